"""Import all models so metadata.create_all can discover them."""

from secadmin.models.module import Module
from secadmin.models.function import AppFunction
from secadmin.models.operation import Operation
from secadmin.models.function_privilege import FunctionPrivilege
from secadmin.models.duty_role import DutyRole
from secadmin.models.job_role import JobRole
from secadmin.models.user import User

__all__ = [
    "Module", "AppFunction", "Operation", "FunctionPrivilege",
    "DutyRole", "JobRole", "User",
]
