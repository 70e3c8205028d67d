"""Seed modules, functions, operations and function privileges."""

from sqlalchemy.orm import Session
from secadmin.models import AppFunction, FunctionPrivilege, Module, Operation

MODULES = [
    ("SEC", "Security", "Users, roles and access"),
    ("GL", "General Ledger", "Journals and accounts"),
    ("AP", "Payables", "Supplier invoices and payments"),
]

FUNCTIONS = [
    ("SEC", "SEC_USERS", "Manage Users"),
    ("GL", "GL_JOURNALS", "Journals"),
    ("AP", "AP_INVOICES", "Invoices"),
]

OPERATIONS = [
    ("VIEW", "View"),
    ("CREATE", "Create"),
    ("UPDATE", "Update"),
    ("DELETE", "Delete"),
]


def _get_or_add(db: Session, model, code: str, **fields):
    record = db.query(model).filter(model.code == code).first()
    if record is None:
        record = model(code=code, created_by="SEED", updated_by="SEED", **fields)
        db.add(record)
        db.flush()
    return record


def seed_catalog(db: Session) -> None:
    """Insert the catalog if it isn't there yet. One privilege per function and operation."""
    modules = {
        code: _get_or_add(db, Module, code, name=name, description=desc)
        for code, name, desc in MODULES
    }
    operations = {code: _get_or_add(db, Operation, code, name=name) for code, name in OPERATIONS}

    count = 0
    for module_code, code, name in FUNCTIONS:
        module = modules[module_code]
        function = _get_or_add(db, AppFunction, code, name=name, module_id=module.id)
        for op_code, operation in operations.items():
            _get_or_add(
                db,
                FunctionPrivilege,
                f"{code}_{op_code}",
                name=f"{operation.name} {name}",
                module_id=module.id,
                function_id=function.id,
                operation_id=operation.id,
            )
            count += 1

    db.commit()
    print(f"✅ Seeded {len(modules)} modules, {len(operations)} operations, {count} privileges")
