# enrollment_portal/schemas/content_schemas.py
"""Pydantic schemas for teachers, news posts and enrollment settings."""
from typing import Optional

from pydantic import BaseModel, Field


class TeacherBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Teacher name")
    position: str = Field(..., min_length=1, max_length=100, description="Position title")
    department: str = Field(..., min_length=1, max_length=100, description="Department")
    imageUrl: Optional[str] = Field(default=None, max_length=500)
    email: Optional[str] = Field(default=None, max_length=200)
    order: int = Field(default=0, ge=0, description="Listing order, ascending")


class TeacherCreate(TeacherBase):
    pass


class TeacherUpdate(BaseModel):
    """Schema for updating a teacher - all fields optional"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    position: Optional[str] = Field(default=None, min_length=1, max_length=100)
    department: Optional[str] = Field(default=None, min_length=1, max_length=100)
    imageUrl: Optional[str] = Field(default=None, max_length=500)
    email: Optional[str] = Field(default=None, max_length=200)
    order: Optional[int] = Field(default=None, ge=0)


class NewsPostBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    excerpt: str = Field(default='', max_length=500)
    imageUrl: Optional[str] = Field(default=None, max_length=500)
    author: str = Field(..., min_length=1, max_length=100)
    isPublished: bool = False


class NewsPostCreate(NewsPostBase):
    pass


class NewsPostUpdate(BaseModel):
    """Schema for updating a news post - all fields optional"""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, min_length=1)
    excerpt: Optional[str] = Field(default=None, max_length=500)
    imageUrl: Optional[str] = Field(default=None, max_length=500)
    author: Optional[str] = Field(default=None, min_length=1, max_length=100)
    isPublished: Optional[bool] = None


class EnrollmentSettings(BaseModel):
    isOpen: bool = True
    schoolYear: str = '2025-2026'
    juniorHighOpen: bool = True
    seniorHighOpen: bool = True
    message: str = ''


class EnrollmentSettingsUpdate(BaseModel):
    isOpen: Optional[bool] = None
    schoolYear: Optional[str] = Field(default=None, min_length=1, max_length=20)
    juniorHighOpen: Optional[bool] = None
    seniorHighOpen: Optional[bool] = None
    message: Optional[str] = Field(default=None, max_length=1000)
