from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime

from hardware_store.models.user import Role


class UserLogin(BaseModel):
    username: str = Field(..., min_length=1, description="Username")
    password: str = Field(..., min_length=1, description="User password")

    class Config:
        json_schema_extra = {
            "example": {
                "username": "manager",
                "password": "admin123"
            }
        }


class UserCreate(BaseModel):
    username: str = Field(
        ...,
        min_length=3,
        max_length=50,
        description="Username (3-50 characters)"
    )
    # Strength rules are checked by the service so every violation is reported
    password: str = Field(..., description="Password (6-128 characters, at least one letter and one digit)")
    role: Role = Field(..., description="Role of the user")

    @field_validator('username')
    @classmethod
    def validate_username(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('username cannot be empty or whitespace only')
        return v.strip()

    class Config:
        json_schema_extra = {
            "example": {
                "username": "achat.diallo",
                "password": "achat2024",
                "role": "PURCHASE_OFFICER"
            }
        }


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(...)


class User(BaseModel):
    id: int
    username: str
    role: Role
    active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True  # Updated from orm_mode=True for newer Pydantic versions


class PasswordReset(BaseModel):
    username: str
    temporary_password: str


class LoginResult(BaseModel):
    user: User
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")


class HealthUser(BaseModel):
    id: int
    username: str
    role: Role


class HealthStatus(BaseModel):
    status: str
    version: str
    timestamp: datetime
    user: Optional[HealthUser] = None
