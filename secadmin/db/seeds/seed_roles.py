"""Seed a duty role and job role hierarchy."""

from typing import Dict, List

from sqlalchemy.orm import Session
from secadmin.models import DutyRole, FunctionPrivilege, JobRole, Module
from secadmin.services.role_service import duty_role_service, job_role_service

# code, name, module, privileges, parents
DUTY_ROLES = [
    ("GL_VIEWER", "Journal Viewer", "GL", ["GL_JOURNALS_VIEW"], []),
    ("GL_ENTRY", "Journal Entry", "GL", ["GL_JOURNALS_CREATE", "GL_JOURNALS_UPDATE"], ["GL_VIEWER"]),
    ("GL_SUPERVISOR", "Journal Supervisor", "GL", ["GL_JOURNALS_DELETE"], ["GL_ENTRY"]),
    ("AP_CLERK", "Invoice Clerk", "AP", ["AP_INVOICES_VIEW", "AP_INVOICES_CREATE"], []),
    ("SEC_ADMIN", "Security Administrator", "SEC",
     ["SEC_USERS_VIEW", "SEC_USERS_CREATE", "SEC_USERS_UPDATE", "SEC_USERS_DELETE"], []),
]

# code, name, duty roles, parents
JOB_ROLES = [
    ("ACCOUNTANT", "Accountant", ["GL_ENTRY", "AP_CLERK"], []),
    ("CONTROLLER", "Controller", ["GL_SUPERVISOR"], ["ACCOUNTANT"]),
    ("IT_SECURITY", "IT Security Manager", ["SEC_ADMIN"], []),
]


def _ids_by_code(db: Session, model, codes: List[str]) -> List[int]:
    if not codes:
        return []
    rows = db.query(model.id, model.code).filter(model.code.in_(codes)).all()
    found: Dict[str, int] = {code: id_ for id_, code in rows}
    missing = [c for c in codes if c not in found]
    if missing:
        raise ValueError(f"{model.__tablename__} not seeded: {', '.join(missing)}")
    return [found[c] for c in codes]


def seed_roles(db: Session) -> None:
    """Create the roles through the services so child lists are kept in step."""
    created = 0
    for code, name, module_code, privileges, parents in DUTY_ROLES:
        if db.query(DutyRole.id).filter(DutyRole.code == code).first():
            continue
        module = db.query(Module).filter(Module.code == module_code).first()
        duty_role_service.create(
            db,
            {"code": code, "name": name, "module_id": module.id if module else None},
            item_ids=_ids_by_code(db, FunctionPrivilege, privileges),
            parent_ids=_ids_by_code(db, DutyRole, parents),
            actor="SEED",
        )
        created += 1

    for code, name, duty_roles, parents in JOB_ROLES:
        if db.query(JobRole.id).filter(JobRole.code == code).first():
            continue
        job_role_service.create(
            db,
            {"code": code, "name": name},
            item_ids=_ids_by_code(db, DutyRole, duty_roles),
            parent_ids=_ids_by_code(db, JobRole, parents),
            actor="SEED",
        )
        created += 1

    print(f"✅ Seeded {created} roles")
