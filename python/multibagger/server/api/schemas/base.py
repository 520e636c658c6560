"""Response envelopes shared by all API routers."""

from __future__ import annotations

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class SuccessResponse(BaseModel, Generic[T]):
    """Standard success envelope."""

    code: int = Field(default=0, description="Status code, 0 on success")
    msg: str = Field(default="success", description="Human-readable message")
    data: Optional[T] = Field(default=None, description="Response payload")

    @classmethod
    def create(cls, data: Optional[T] = None, msg: str = "success") -> "SuccessResponse[T]":
        return cls(code=0, msg=msg, data=data)
