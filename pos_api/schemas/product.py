from pydantic import AliasChoices, BaseModel, Field, ConfigDict, field_validator, model_validator
from datetime import datetime
from typing import Optional

from pos_api.models.product import Product
from pos_api.utils.images import image_data_uri


def _image_field(name: str, camel: str, description: str):
    return Field(None, validation_alias=AliasChoices(name, camel), description=description)


class ProductBase(BaseModel):
    """Base schema for Product with common attributes."""
    model_config = ConfigDict(str_strip_whitespace=True, coerce_numbers_to_str=True)

    name: str = Field(..., min_length=1, max_length=255, description="Product name")
    price: float = Field(..., gt=0, description="Product price (must be positive)")
    category: str = Field(..., min_length=1, max_length=255, description="Grouping label")
    amount: Optional[str] = Field(None, max_length=255, description="Free-text qualifier, e.g. '3 pieces'")

    @field_validator("amount")
    @classmethod
    def blank_amount_is_none(cls, value):
        return value or None


class ProductCreate(ProductBase):
    """
    Schema for creating a new product.

    At most one image representation is stored: an embedded base64 image
    takes precedence over image_url.
    """
    hidden: bool = Field(False, description="Hide from customer-facing listings")
    available: bool = Field(True, description="Legacy availability flag")
    image_url: Optional[str] = _image_field("image_url", "imageUrl", "External image URL")
    image_base64: Optional[str] = _image_field(
        "image_base64", "imageBase64", "Base64 image or data URI"
    )
    image_mime_type: Optional[str] = _image_field(
        "image_mime_type", "imageMimeType", "MIME type of image_base64"
    )

    @field_validator("hidden", mode="before")
    @classmethod
    def null_hidden_is_false(cls, value):
        return False if value is None or value == "" else value

    @field_validator("available", mode="before")
    @classmethod
    def null_available_is_true(cls, value):
        return True if value is None or value == "" else value


class ProductUpdate(BaseModel):
    """
    Schema for updating an existing product. All fields are optional.

    Only fields present in the body are applied. name, price and category
    cannot be cleared.
    """
    model_config = ConfigDict(str_strip_whitespace=True, coerce_numbers_to_str=True)

    name: Optional[str] = Field(None, min_length=1, max_length=255, description="Product name")
    price: Optional[float] = Field(None, gt=0, description="Product price")
    category: Optional[str] = Field(None, min_length=1, max_length=255, description="Grouping label")
    amount: Optional[str] = Field(None, max_length=255, description="Free-text qualifier")
    hidden: Optional[bool] = Field(None, description="Hide from customer-facing listings")
    available: Optional[bool] = Field(None, description="Legacy availability flag")
    image_url: Optional[str] = _image_field("image_url", "imageUrl", "External image URL")
    image_base64: Optional[str] = _image_field(
        "image_base64", "imageBase64", "Base64 image or data URI; null or empty removes the image"
    )
    image_mime_type: Optional[str] = _image_field(
        "image_mime_type", "imageMimeType", "MIME type of image_base64"
    )

    @field_validator("amount")
    @classmethod
    def blank_amount_is_none(cls, value):
        return value or None

    @model_validator(mode="after")
    def required_fields_not_null(self):
        for field in ("name", "price", "category"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    def column_updates(self) -> dict:
        """Plain column values present in the body, image fields excluded."""
        data = self.model_dump(
            include={"name", "price", "category", "amount", "hidden", "available"},
            exclude_unset=True,
        )
        if "hidden" in data and data["hidden"] is None:
            data["hidden"] = False
        if "available" in data and data["available"] is None:
            data["available"] = True
        return data

    def image_fields(self) -> dict:
        return self.model_dump(
            include={"image_url", "image_base64", "image_mime_type"},
            exclude_unset=True,
        )


class ProductResponse(BaseModel):
    """Schema for product response including all fields."""
    id: str
    name: str
    price: float
    category: str
    amount: Optional[str] = None
    available: bool
    hidden: bool
    image_url: Optional[str] = None
    has_image: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_product(cls, product: Product) -> "ProductResponse":
        """
        Serialize a product. When only embedded image bytes are stored,
        image_url carries them as a data URI.
        """
        return cls(
            id=product.id,
            name=product.name,
            price=product.price,
            category=product.category,
            amount=product.amount,
            available=bool(product.available),
            hidden=bool(product.hidden),
            image_url=product.image_url or image_data_uri(product.image_data, product.image_mime_type),
            has_image=bool(product.image_data),
            created_at=product.created_at,
            updated_at=product.updated_at,
        )
