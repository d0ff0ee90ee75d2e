class POSError(Exception):
    """Base class for errors raised by the service layer."""
    pass


class InvalidInputError(POSError):
    """Exception raised when a request is malformed or misses required fields."""
    pass


class InvalidImageError(InvalidInputError):
    """Exception raised when an image payload cannot be decoded."""
    pass


class NotFoundError(POSError):
    """Exception raised when the referenced record doesn't exist."""
    pass


class ConflictError(POSError):
    """Exception raised when an operation is blocked by dependent records."""
    pass
