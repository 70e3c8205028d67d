"""Job role model."""

from sqlalchemy import Column, Integer, String, Text
from secadmin.db.base import Base
from secadmin.models.mixins import AuditMixin, RoleGraphMixin


class JobRole(RoleGraphMixin, AuditMixin, Base):
    """Bundle of duty roles assigned to users, inheriting from other job roles."""
    __tablename__ = "job_roles"

    id = Column("job_role_id", Integer, primary_key=True, autoincrement=True)
    code = Column("job_role_code", String(100), unique=True, nullable=False, index=True)
    name = Column("job_role_name", String(255), nullable=False)
    description = Column(String(500), nullable=True)

    # JSON arrays of ids
    items_json = Column("duty_roles", Text, nullable=True)
    parents_json = Column("inherited_from", Text, nullable=True)
    children_json = Column("inherited", Text, nullable=True)
