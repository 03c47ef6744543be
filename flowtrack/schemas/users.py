from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from flowtrack.core.rbac.roles import Role


class User(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    name: str = Field(min_length=1, max_length=255)
    username: str = Field(min_length=1, max_length=100)
    password_hash: str
    role: Role
    version: int = 0


class UserInput(BaseModel):
    """Fields an administrator submits to create or edit a user.

    ``password`` may be omitted when editing; the stored hash is kept.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[str] = None
    name: str = Field(min_length=1, max_length=255)
    username: str = Field(min_length=1, max_length=100)
    password: Optional[str] = None
    role: Role


class RoleLabel(BaseModel):
    id: str
    role: Role
    label: str = Field(min_length=1, max_length=100)
    version: int = 0
