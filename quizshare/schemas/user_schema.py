from fastapi_users import schemas
import uuid
from pydantic import BaseModel


class UserRead(schemas.BaseUser[uuid.UUID]):
    full_name: str | None = None


class UserCreate(schemas.BaseUserCreate):
    full_name: str


class UserUpdate(schemas.BaseUserUpdate):
    full_name: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


class UserPublic(BaseModel):
    """Identity of a respondent as shown to a quiz owner."""
    id: uuid.UUID
    email: str
    full_name: str | None = None


class LoginResponse(BaseModel):
    user: UserPublic
    token: str
