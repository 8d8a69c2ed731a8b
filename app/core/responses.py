from typing import Any, Generic, TypeVar, Optional
from pydantic import BaseModel

T = TypeVar("T")

class ResponseBase(BaseModel, Generic[T]):
    data: Optional[T] = None
    message: Optional[str] = None
    success: bool = True

class StandardResponse(ResponseBase[T]):
    pass

class ListResponse(ResponseBase[T]):
    count: int = 0
    meta: Optional[dict[str, Any]] = None

class GymResponse(ResponseBase[T]):
    meta: Optional[dict[str, Any]] = None
