"""
Data models for the Todo service.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from shared.errors import ValidationError


class TodoList(BaseModel):
    """A todo list (collection) owned by a user."""
    id: int = Field(..., description="List ID")
    title: str = Field(..., description="List title")
    description: str = Field("", description="List description")


class TodoItem(BaseModel):
    """An item inside a todo list."""
    id: int = Field(..., description="Item ID")
    title: str = Field(..., description="Item title")
    description: str = Field("", description="Item description")
    done: bool = Field(False, description="Completion flag")


class ListCreateRequest(BaseModel):
    """Request model for list creation."""
    title: str = Field(..., min_length=1, description="List title")
    description: str = Field("", description="List description")


class ItemCreateRequest(BaseModel):
    """Request model for item creation."""
    title: str = Field(..., min_length=1, description="Item title")
    description: str = Field("", description="Item description")
    done: bool = Field(False, description="Completion flag")


class UpdateListInput(BaseModel):
    """Partial list update."""
    title: Optional[str] = None
    description: Optional[str] = None

    def validate_has_values(self):
        if self.title is None and self.description is None:
            raise ValidationError("update structure has no values")


class UpdateItemInput(BaseModel):
    """Partial item update."""
    title: Optional[str] = None
    description: Optional[str] = None
    done: Optional[bool] = None

    def validate_has_values(self):
        if self.title is None and self.description is None and self.done is None:
            raise ValidationError("update structure has no values")


class AllListsResponse(BaseModel):
    data: List[TodoList]


class CreatedResponse(BaseModel):
    id: int


class StatusResponse(BaseModel):
    status: str = "ok"
