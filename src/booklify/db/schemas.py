"""Pydantic schemas for chapter data entering the database."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..reading.cfi import is_valid_cfi


class ChapterCreate(BaseModel):
    """Schema for storing an extracted chapter."""

    title: str = Field("", max_length=500)
    order: int = Field(..., ge=0)
    href: str = ""
    cfi_start: Optional[str] = Field(None, description="CFI of the chapter start")
    cfi_end: Optional[str] = Field(None, description="CFI of the chapter end")

    @field_validator("cfi_start", "cfi_end")
    @classmethod
    def check_cfi(cls, v: Optional[str]) -> Optional[str]:
        """Reject chapter boundaries that are not valid CFIs."""
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not is_valid_cfi(v):
            raise ValueError(f"Invalid CFI: {v}")
        return v
