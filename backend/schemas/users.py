from typing import Literal, Optional
from uuid import UUID

from fastapi_users import schemas
from pydantic import BaseModel

UserRole = Literal["admin", "operator", "viewer"]


class UserRead(schemas.BaseUser[UUID]):
    name: Optional[str] = None
    role: UserRole = "viewer"


# role is not self-assignable; admins change it through /users/{id}/role
class UserCreate(schemas.BaseUserCreate):
    name: Optional[str] = None


class UserUpdate(schemas.BaseUserUpdate):
    name: Optional[str] = None


class UserRoleUpdate(BaseModel):
    role: UserRole
