"""Operation model."""

from sqlalchemy import Column, Integer, String
from secadmin.db.base import Base
from secadmin.models.mixins import AuditMixin


class Operation(AuditMixin, Base):
    """An action that can be performed on a function (view, create, approve...)."""
    __tablename__ = "operations"

    id = Column("operation_id", Integer, primary_key=True, autoincrement=True)
    code = Column("operation_code", String(50), unique=True, nullable=False, index=True)
    name = Column("operation_name", String(255), nullable=False)
    description = Column(String(500), nullable=True)
