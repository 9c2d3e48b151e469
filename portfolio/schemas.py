"""
Pydantic schemas for the portfolio API. JSON keys are camelCase; snake_case
is accepted on input as well.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from portfolio.records import ContactStatus, ProjectStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class UserResponse(CamelModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ProjectCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    featured_image: Optional[str] = None
    tags: Optional[list[str]] = None
    status: Optional[ProjectStatus] = None


class ProjectUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)
    featured_image: Optional[str] = None
    tags: Optional[list[str]] = None
    status: Optional[ProjectStatus] = None


class ProjectResponse(CamelModel):
    id: int
    title: str
    slug: str
    description: str
    content: str
    category: str
    featured_image: Optional[str] = None
    tags: list[str]
    status: ProjectStatus
    author_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class MediaResponse(CamelModel):
    id: int
    filename: str
    original_name: str
    mime_type: str
    size: str
    url: str
    alt_text: Optional[str] = None
    uploaded_by: Optional[str] = None
    created_at: datetime


class ContactCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    subject: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)


class ContactStatusUpdate(CamelModel):
    status: ContactStatus


class ContactResponse(CamelModel):
    id: int
    name: str
    email: str
    subject: str
    message: str
    status: ContactStatus
    created_at: datetime


class HealthResponse(BaseModel):
    status: str
