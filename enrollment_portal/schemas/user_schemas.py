from typing import Literal, Optional

from pydantic import BaseModel

UserRole = Literal['student', 'admin']


class Principal(BaseModel):
    """Identity asserted by a verified ID token"""
    uid: str
    email: Optional[str] = None
    displayName: Optional[str] = None
    photoURL: Optional[str] = None


class User(Principal):
    role: Optional[UserRole] = None
