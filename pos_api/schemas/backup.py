from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from pos_api.schemas.order import CamelModel, ImportOrder


class BackupProduct(CamelModel):
    """A product record as written by the backup export."""
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    price: float = Field(..., gt=0)
    category: Optional[str] = None
    amount: Optional[str] = None
    available: Optional[bool] = None
    hidden: Optional[bool] = None
    image_url: Optional[str] = Field(None, alias="image_url")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BackupImportRequest(CamelModel):
    """Full backup file. Both arrays are required."""
    version: Optional[str] = None
    timestamp: Optional[datetime] = None
    orders: list[ImportOrder]
    products: list[BackupProduct]


class ImportedCounts(BaseModel):
    orders: int
    products: int


class BackupImportResponse(BaseModel):
    success: bool = True
    imported: ImportedCounts
    message: str = "Database backup imported successfully"


class DatabaseCounts(CamelModel):
    orders: int
    products: int
    order_items: int


class BackupInfoResponse(CamelModel):
    database: DatabaseCounts
    last_backup: Optional[datetime] = None
