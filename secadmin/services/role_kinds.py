"""Descriptors for the two role tables that share the inheritance engine."""

from dataclasses import dataclass, field
from typing import Dict, Tuple, Type

from secadmin.models import DutyRole, FunctionPrivilege, JobRole, Module, User
from secadmin.services.lookups import Grant


@dataclass(frozen=True)
class RoleKind:
    """Which table holds the nodes and which table holds their leaf items."""

    key: str
    label: str
    item_label: str
    model: Type
    item_model: Type
    # field -> (model, label) checked on create/update
    references: Dict[str, Tuple[Type, str]] = field(default_factory=dict)
    # rows that grant roles of this kind; cleaned up when roles are deleted
    granted_by: Tuple[Grant, ...] = ()


DUTY_ROLE = RoleKind(
    key="duty_role",
    label="Duty role",
    item_label="function privilege",
    model=DutyRole,
    item_model=FunctionPrivilege,
    references={"module_id": (Module, "Module")},
    granted_by=(Grant(JobRole, "items_json", "explicit_item_ids"),),
)

JOB_ROLE = RoleKind(
    key="job_role",
    label="Job role",
    item_label="duty role",
    model=JobRole,
    item_model=DutyRole,
    granted_by=(Grant(User, "job_roles_json", "job_role_ids"),),
)

ROLE_KINDS = {kind.key: kind for kind in (DUTY_ROLE, JOB_ROLE)}
