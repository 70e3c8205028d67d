"""Module model."""

from sqlalchemy import Column, Integer, String
from secadmin.db.base import Base
from secadmin.models.mixins import AuditMixin


class Module(AuditMixin, Base):
    """Application module grouping functions, privileges and duty roles."""
    __tablename__ = "modules"

    id = Column("module_id", Integer, primary_key=True, autoincrement=True)
    code = Column("module_code", String(50), unique=True, nullable=False, index=True)
    name = Column("module_name", String(255), nullable=False)
    description = Column(String(500), nullable=True)
