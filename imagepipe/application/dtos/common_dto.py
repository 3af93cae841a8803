"""Common DTOs for API responses and error handling."""
from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response model."""
    detail: str = Field(..., description="Error message describing what went wrong")


class DeleteResponse(BaseModel):
    """Outcome of a delete; file-removal problems are reported as warnings."""
    ok: bool = Field(True, description="Indicates the record was deleted")
    message: str = Field(..., description="Human readable outcome")
    warnings: list[str] = Field(default_factory=list, description="Files that could not be removed")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Health status", examples=["healthy"])


class RootResponse(BaseModel):
    """Root endpoint response model."""
    status: str = Field(..., description="API status", examples=["ok"])
    service: str = Field(..., description="Service name", examples=["imagepipe-backend"])
    version: str = Field(..., description="API version", examples=["0.1.0"])
