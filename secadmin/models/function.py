"""Function model."""

from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from secadmin.db.base import Base
from secadmin.models.mixins import AuditMixin


class AppFunction(AuditMixin, Base):
    """A screen or feature inside a module."""
    __tablename__ = "functions"

    id = Column("function_id", Integer, primary_key=True, autoincrement=True)
    module_id = Column(Integer, ForeignKey("modules.module_id"), nullable=True, index=True)
    code = Column("function_code", String(50), unique=True, nullable=False, index=True)
    name = Column("function_name", String(255), nullable=False)
    description = Column(String(500), nullable=True)

    module = relationship("Module")
