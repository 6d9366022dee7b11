"""DTOs for Identity app."""
from dataclasses import dataclass
from uuid import UUID
from typing import Optional, List


@dataclass(frozen=True)
class UserDTO:
    id: UUID
    email: str
    name: str
    role: str
    phone: str
    address: str
    is_active: bool
    permissions: List[str]


from ninja import Schema


class UserCreate(Schema):
    email: str
    password: str
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None


class UserUpdate(Schema):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
