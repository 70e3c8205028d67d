"""Function privilege model."""

from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from secadmin.db.base import Base
from secadmin.models.mixins import AuditMixin


class FunctionPrivilege(AuditMixin, Base):
    """Permission to run one operation on one function. Leaf item of duty roles."""
    __tablename__ = "function_privileges"

    id = Column("privilege_id", Integer, primary_key=True, autoincrement=True)
    code = Column("privilege_code", String(100), unique=True, nullable=False, index=True)
    name = Column("privilege_name", String(255), nullable=False)
    description = Column(String(500), nullable=True)
    module_id = Column(Integer, ForeignKey("modules.module_id"), nullable=True, index=True)
    function_id = Column(Integer, ForeignKey("functions.function_id"), nullable=True, index=True)
    operation_id = Column(Integer, ForeignKey("operations.operation_id"), nullable=True, index=True)

    module = relationship("Module")
    function = relationship("AppFunction")
    operation = relationship("Operation")
