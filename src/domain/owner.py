"""Owner Domain Entity

Account that owns credit balances and campaigns. Only the role is
relevant to credit accounting.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import String
from src.domain.base import BaseModel, utcnow


class OwnerRole(str, Enum):
    """Role hierarchy, highest first"""
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    RESELLER = "reseller"
    USER = "user"


class Owner(BaseModel, table=True):
    """
    Owner - account whose balances and campaigns are acted on

    Domain Rules:
    - super_admin is the unlimited tier: its balances are never debited
    - role is supplied to the transfer policy, never re-derived elsewhere
    """

    __tablename__ = "owners"

    id: str = Field(
        sa_column=Column(String(64), primary_key=True),
        description="Owner identifier"
    )

    name: str = Field(
        default="",
        description="Display name used in transaction descriptions"
    )

    role: OwnerRole = Field(
        description="Role in the credit hierarchy"
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        description="Owner creation timestamp"
    )

    @property
    def is_unlimited(self) -> bool:
        return self.role == OwnerRole.SUPER_ADMIN
