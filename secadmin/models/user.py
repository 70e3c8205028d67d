"""User model."""

from sqlalchemy import Column, Integer, String, Text
from secadmin.db.base import Base
from secadmin.core.id_codec import decode_ids, encode_ids
from secadmin.models.mixins import AuditMixin


class User(AuditMixin, Base):
    """Account holding explicit job roles."""
    __tablename__ = "users"

    id = Column("user_id", Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    job_roles_json = Column("job_roles", Text, nullable=True)  # JSON list of job role ids

    @property
    def job_role_ids(self):
        return decode_ids(self.job_roles_json)

    @job_role_ids.setter
    def job_role_ids(self, ids):
        self.job_roles_json = encode_ids(ids)
