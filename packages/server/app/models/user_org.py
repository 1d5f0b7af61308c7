"""Membership join tables: user <-> organization and user <-> team."""

from sqlmodel import Field, SQLModel


class UserOrganization(SQLModel, table=True):
    __tablename__ = "user_organizations"

    user_id: int = Field(foreign_key="users.id", primary_key=True)
    organization_id: int = Field(foreign_key="organizations.id", primary_key=True)
    role: str = Field(nullable=False, default="MEMBER")  # OWNER | ADMIN | MEMBER


class TeamMember(SQLModel, table=True):
    __tablename__ = "team_members"

    user_id: int = Field(foreign_key="users.id", primary_key=True)
    team_id: int = Field(foreign_key="teams.id", primary_key=True)
    role: str = Field(nullable=False, default="MEMBER")  # LEAD | MEMBER
