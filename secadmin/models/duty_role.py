"""Duty role model."""

from sqlalchemy import Column, Integer, String, Text, ForeignKey
from sqlalchemy.orm import relationship
from secadmin.db.base import Base
from secadmin.models.mixins import AuditMixin, RoleGraphMixin


class DutyRole(RoleGraphMixin, AuditMixin, Base):
    """Bundle of function privileges, inheriting from other duty roles."""
    __tablename__ = "duty_roles"

    id = Column("duty_role_id", Integer, primary_key=True, autoincrement=True)
    code = Column("role_code", String(100), unique=True, nullable=False, index=True)
    name = Column("duty_role_name", String(255), nullable=False)
    description = Column(String(500), nullable=True)
    module_id = Column(Integer, ForeignKey("modules.module_id"), nullable=True, index=True)

    # JSON arrays of ids
    items_json = Column("function_privileges", Text, nullable=True)
    parents_json = Column("inherited_from_roles", Text, nullable=True)
    children_json = Column("inherited_child_roles", Text, nullable=True)

    module = relationship("Module")
