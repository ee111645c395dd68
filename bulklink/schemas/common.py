"""Shared schema base classes."""
from typing import List, Generic, TypeVar
from pydantic import BaseModel
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Accepts and emits camelCase field names; snake_case is accepted too."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class Page(CamelModel, Generic[T]):
    data: List[T]
    pagination: Pagination


class MessageResponse(CamelModel):
    message: str
