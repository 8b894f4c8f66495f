from pydantic import BaseModel
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class SuccessResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
    message: str
