"""
Module: obligation_kernel.models.category
Responsibility: ORM persistence for the reference categories a definition may
    point at.  The engine only checks that a referenced category exists.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from obligation_kernel.db.base import TrackedBase


class Category(TrackedBase):
    """Reference-data category (taxes, insurance, ...)."""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Category {self.name}>"
