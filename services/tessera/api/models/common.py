"""Common Pydantic models used across the API."""

from pydantic import BaseModel, ConfigDict, Field


class TesseraBaseModel(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class PaginationParams(TesseraBaseModel):
    """Page-based pagination parameters for list endpoints."""

    page: int = Field(default=1, ge=1, description="1-based page number")
    page_size: int | None = Field(
        default=None, ge=1, le=100, description="Items per page (server default if omitted)"
    )


class ErrorResponse(TesseraBaseModel):
    """Body of every 4xx response raised through tessera.errors."""

    code: str
    message: str
