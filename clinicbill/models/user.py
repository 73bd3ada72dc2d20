from __future__ import annotations

from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    DOCTOR = "DOCTOR"
    RECEPTIONIST = "RECEPTIONIST"
    ACCOUNTANT = "ACCOUNTANT"


class UserRef(BaseModel):
    id: UUID
    username: str
    full_name: str = ""
    role: UserRole
