from pydantic import BaseModel, EmailStr
from datetime import datetime
from typing import Optional

class UserBase(BaseModel):
    email: EmailStr
    firstName: Optional[str] = None
    lastName: Optional[str] = None

class UserCreate(UserBase):
    # Subject from the hosted OAuth provider, when the sign-up came through it
    identityId: Optional[str] = None

class SignIn(UserCreate):
    pass

class UserOut(BaseModel):
    userId: str
    email: str
    firstName: Optional[str]
    lastName: Optional[str]
    virtualBalance: float
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_model(cls, user) -> "UserOut":
        return cls(
            userId=user.user_id,
            email=user.email,
            firstName=user.first_name,
            lastName=user.last_name,
            virtualBalance=user.virtual_balance,
            createdAt=user.created_at,
            updatedAt=user.updated_at,
        )
