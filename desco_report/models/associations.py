"""Association tables for many-to-many relationships."""

from sqlalchemy import Column, ForeignKey, Table

from desco_report.core.database import Base

# Many-to-many: User <-> Role
user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)
