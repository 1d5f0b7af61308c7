"""Organization and team models."""

from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, IntIDMixin


class Organization(IntIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "organizations"

    name: str = Field(nullable=False, index=True)


class Team(IntIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "teams"

    name: str = Field(nullable=False, index=True)
    organization_id: int = Field(foreign_key="organizations.id", nullable=False, index=True)
