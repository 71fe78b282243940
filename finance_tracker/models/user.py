from pydantic import BaseModel, EmailStr, Field
from typing import Literal, Optional
from uuid import uuid4
from datetime import datetime


class UserPreferences(BaseModel):
    language: Literal["en", "jp"] = "en"
    dark_mode: bool = False
    currency: str = Field(default="USD", min_length=1, max_length=8)


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserInDB(BaseModel):
    user_id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    email: EmailStr
    password_hash: str
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    preferences: UserPreferences = Field(default_factory=UserPreferences)


class UserPublic(BaseModel):
    user_id: str
    name: str
    email: EmailStr
    created_at: str
    preferences: UserPreferences = Field(default_factory=UserPreferences)


class PreferencesUpdate(BaseModel):
    language: Optional[Literal["en", "jp"]] = None
    dark_mode: Optional[bool] = None
    currency: Optional[str] = Field(default=None, min_length=1, max_length=8)
