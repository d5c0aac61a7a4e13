"""Common schemas for the BAMB API."""

from typing import Any, Dict, List, Optional

from fastapi import Query
from pydantic import BaseModel, Field


class ListParams:
    """Query parameters shared by every list endpoint.

    ``conditions`` and ``selects`` may be repeated; each value is a JSON
    encoded condition or selection.
    """

    def __init__(
        self,
        conditions: Optional[List[str]] = Query(None, description="JSON encoded conditions"),
        selects: Optional[List[str]] = Query(None, description="JSON encoded selections"),
        offset: int = Query(0, ge=0, description="Rows to skip"),
        size: int = Query(0, ge=0, description="Page size, 0 for no limit"),
    ):
        self.conditions = conditions
        self.selects = selects
        self.offset = offset
        self.size = size


class ListResponse(BaseModel):
    """Paginated list wrapper."""
    data: List[Dict[str, Any]]
    count: int
    totalCount: int


class CountResponse(BaseModel):
    count: int


class QueryBody(BaseModel):
    """List query carried in a request body."""
    conditions: Optional[List[Any]] = None
    selects: Optional[List[Any]] = None
    offset: int = Field(0, ge=0)
    size: int = Field(0, ge=0)


class ErrorResponse(BaseModel):
    """Standard error response."""
    message: str
    messageCode: str
    messageData: Optional[Dict[str, Any]] = None
    thrownOn: str
