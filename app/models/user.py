from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, EmailStr, Field

from app.models.base import UTCDateTime
from app.utils.date_ranges import utcnow


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = ""


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserInDB(BaseModel):
    user_id: str = Field(default_factory=lambda: str(uuid4()))
    email: EmailStr
    name: str = ""
    password_hash: str
    created_at: UTCDateTime = Field(default_factory=utcnow)


class UserPublic(BaseModel):
    user_id: str
    email: EmailStr
    name: str = ""
    created_at: UTCDateTime


class UserProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    email: Optional[EmailStr] = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)
    confirm_password: str
