"""CRUD for modules, functions, operations and function privileges."""

import logging
from typing import Any, Dict, Optional, Sequence, Tuple, Type

from sqlalchemy.orm import Session

from secadmin.core.exceptions import ValidationError
from secadmin.db.session import transaction
from secadmin.models import AppFunction, DutyRole, FunctionPrivilege, Module, Operation
from secadmin.services.lookups import (
    Grant,
    apply_search,
    ensure_unique_code,
    get_or_404,
    paginate,
    require_references,
    revoke_grants,
)

logger = logging.getLogger("secadmin")


class CatalogService:
    """Plain CRUD over one catalog table with a unique ``code``."""

    def __init__(self, model: Type, label: str,
                 references: Optional[Dict[str, Tuple[Type, str]]] = None,
                 granted_by: Sequence[Grant] = ()):
        self.model = model
        self.label = label
        self.references = references or {}
        self.granted_by = tuple(granted_by)

    def create(self, db: Session, fields: Dict[str, Any], actor: Optional[str] = None):
        """Create a catalog record."""
        fields = {k: v for k, v in fields.items() if v is not None}
        if not fields.get("code") or not fields.get("name"):
            raise ValidationError("code and name are required")

        with transaction(db):
            ensure_unique_code(db, self.model, fields["code"], self.label)
            require_references(db, fields, self.references)
            record = self.model(**fields, created_by=actor, updated_by=actor)
            db.add(record)
            db.flush()

        logger.info("Created %s %s (%s)", self.label.lower(), record.id, record.code)
        return record

    def get(self, db: Session, record_id: int):
        """Get a record by id."""
        return get_or_404(db, self.model, record_id, self.label)

    def list_records(
        self,
        db: Session,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        status: Optional[str] = None,
        **filters: Optional[int],
    ) -> Dict[str, Any]:
        """List records with search, status and foreign-key filters."""
        query = apply_search(db.query(self.model), self.model, search)
        for field, value in filters.items():
            if value is not None:
                query = query.filter(getattr(self.model, field) == value)
        result = paginate(query, self.model, page, limit, status)
        result["data"] = result.pop("rows")
        return result

    def update(self, db: Session, record_id: int, fields: Dict[str, Any], actor: Optional[str] = None):
        """Update a record's fields."""
        fields = {
            k: v for k, v in fields.items()
            if not (v is None and k in ("code", "name", "status"))
        }
        if not fields:
            raise ValidationError("No fields to update")

        with transaction(db):
            record = get_or_404(db, self.model, record_id, self.label, for_update=True)
            if "code" in fields:
                ensure_unique_code(db, self.model, fields["code"], self.label, exclude_id=record_id)
            require_references(db, fields, self.references)
            for key, value in fields.items():
                if hasattr(record, key):
                    setattr(record, key, value)
            record.updated_by = actor
        return record

    def delete(self, db: Session, record_id: int) -> None:
        """Delete a record and revoke it from the rows that grant it."""
        with transaction(db):
            record = get_or_404(db, self.model, record_id, self.label, for_update=True)
            revoked = revoke_grants(db, self.granted_by, [record_id])
            db.delete(record)
        if revoked:
            logger.info("Revoked %s %s from %s row(s)", self.label.lower(), record_id, len(revoked))
        logger.info("Deleted %s %s", self.label.lower(), record_id)


module_service = CatalogService(Module, "Module")
function_service = CatalogService(
    AppFunction, "Function", {"module_id": (Module, "Module")},
)
operation_service = CatalogService(Operation, "Operation")
privilege_service = CatalogService(
    FunctionPrivilege,
    "Function privilege",
    {
        "module_id": (Module, "Module"),
        "function_id": (AppFunction, "Function"),
        "operation_id": (Operation, "Operation"),
    },
    granted_by=(Grant(DutyRole, "items_json", "explicit_item_ids"),),
)
