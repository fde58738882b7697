"""Pydantic schemas for auth module."""

from pydantic import BaseModel


class Principal(BaseModel):
    """The acting identity handed to the collaboration core."""

    user_id: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

