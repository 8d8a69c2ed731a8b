from typing import Optional
import uuid
from pydantic import BaseModel, EmailStr, Field
from app.models.enums import Role, GymRole

class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"

class TokenPayload(BaseModel):
    sub: Optional[str] = None
    exp: Optional[int] = None
    type: Optional[str] = None

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class UserBase(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None

class UserCreate(UserBase):
    password: str = Field(min_length=6)

class UserResponse(UserBase):
    id: uuid.UUID
    role: Role
    is_active: bool

    class Config:
        from_attributes = True

class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)

class MyGymResponse(BaseModel):
    gym_id: uuid.UUID
    gym_name: str
    role: GymRole
