from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ListResponse(BaseModel, Generic[T]):
    items: list[T]
    count: int
    limit: int | None = None
    offset: int | None = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str
