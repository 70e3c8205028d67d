"""CRUD, item assignment and effective items for duty and job roles.

Both role tables have the same shape: explicit items, parents and a cached
list of children. One ``RoleService`` per ``RoleKind`` serves each of them.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from secadmin.core.exceptions import ResourceNotFoundError, ValidationError, format_ids
from secadmin.db.session import transaction
from secadmin.services.lookups import (
    apply_search,
    ensure_unique_code,
    fetch_by_ids,
    format_missing,
    get_or_404,
    missing_ids,
    paginate,
    require_references,
    summarize,
)
from secadmin.services.role_graph import tag_effective_items
from secadmin.services.role_kinds import DUTY_ROLE, JOB_ROLE, RoleKind
from secadmin.services.role_links import DeletionPolicy, LinkSynchronizer

logger = logging.getLogger("secadmin.roles")

_DESCRIPTIVE_FIELDS = ("code", "name", "description", "status", "module_id")
_REQUIRED_FIELDS = ("code", "name", "status")


class RoleService:
    """Manages one role table and its inheritance graph."""

    def __init__(self, kind: RoleKind):
        self.kind = kind
        self.links = LinkSynchronizer(kind)
        self.deletion = DeletionPolicy(kind)

    # ---- Reads ----

    def get(self, db: Session, role_id: int, for_update: bool = False):
        """Get a role by id."""
        return get_or_404(db, self.kind.model, role_id, self.kind.label, for_update=for_update)

    def inherited_item_ids(self, db: Session, role) -> Set[int]:
        return self.links.graph(db).resolve_inherited_items(role.parent_ids, exclude=[role.id])

    def effective_items(self, db: Session, role) -> List[Dict[str, Any]]:
        """Explicit plus inherited items, each flagged ``inherited``.

        A failing walk or lookup degrades to the explicit items only.
        """
        explicit = role.explicit_item_ids
        try:
            inherited = self.inherited_item_ids(db, role)
            items = fetch_by_ids(db, self.kind.item_model, explicit | inherited)
        except SQLAlchemyError as e:
            logger.warning(
                "Effective %ss of %s %s unavailable, returning explicit only: %s",
                self.kind.item_label, self.kind.label.lower(), role.id, e,
            )
            db.rollback()
            inherited = set()
            items = fetch_by_ids(db, self.kind.item_model, explicit)
        return tag_effective_items(items, inherited)

    def to_dict(self, db: Session, role) -> Dict[str, Any]:
        """Row fields plus effective items and parent/child summaries."""
        data = {
            "id": role.id,
            "code": role.code,
            "name": role.name,
            "description": role.description,
            "status": role.status,
            "module_id": getattr(role, "module_id", None),
            "explicit_item_ids": sorted(role.explicit_item_ids),
            "items": self.effective_items(db, role),
            "parents": summarize(fetch_by_ids(db, self.kind.model, role.parent_ids)),
            "children": summarize(fetch_by_ids(db, self.kind.model, role.child_ids)),
            "created_at": role.created_at,
            "created_by": role.created_by,
            "updated_at": role.updated_at,
            "updated_by": role.updated_by,
        }
        return data

    def list_roles(
        self,
        db: Session,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        code: Optional[str] = None,
        name: Optional[str] = None,
        status: Optional[str] = None,
        module_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """List roles with filters, pagination and activity counts."""
        model = self.kind.model
        query = apply_search(db.query(model), model, search, code, name)
        if module_id is not None:
            if not hasattr(model, "module_id"):
                raise ValidationError(f"{self.kind.label}s cannot be filtered by module")
            query = query.filter(model.module_id == module_id)

        result = paginate(query, model, page, limit, status)
        result["data"] = [self.to_dict(db, row) for row in result.pop("rows")]
        return result

    # ---- Mutations ----

    def create(
        self,
        db: Session,
        fields: Dict[str, Any],
        item_ids: Iterable[int] = (),
        parent_ids: Iterable[int] = (),
        actor: Optional[str] = None,
    ):
        """Create a role and register it as a child of each parent."""
        item_ids, parent_ids = set(item_ids), set(parent_ids)
        fields = self._descriptive(fields)
        if not fields.get("code") or not fields.get("name"):
            raise ValidationError("code and name are required")

        with transaction(db):
            ensure_unique_code(db, self.kind.model, fields["code"], self.kind.label)
            require_references(db, fields, self.kind.references)
            self._require_parents(db, parent_ids)
            self._require_items(db, item_ids)

            role = self.kind.model(**fields, created_by=actor, updated_by=actor)
            role.explicit_item_ids = item_ids
            role.parent_ids = parent_ids
            db.add(role)
            db.flush()

            self.links.on_parents_changed(db, role.id, set(), parent_ids)

        logger.info("Created %s %s (%s)", self.kind.label.lower(), role.id, role.code)
        return role

    def update(
        self,
        db: Session,
        role_id: int,
        fields: Optional[Dict[str, Any]] = None,
        item_ids: Optional[Iterable[int]] = None,
        parent_ids: Optional[Iterable[int]] = None,
        actor: Optional[str] = None,
    ):
        """Update descriptive fields, explicit items and/or parents in one transaction.

        Explicit items are checked against the items inherited through the
        parents the role will have after this update.
        """
        fields = self._descriptive(fields or {})
        if not fields and item_ids is None and parent_ids is None:
            raise ValidationError("No fields to update")

        with transaction(db):
            role = self.get(db, role_id, for_update=True)
            old_parents = role.parent_ids
            new_parents = old_parents

            if parent_ids is not None:
                new_parents = set(parent_ids)
                self._require_parents(db, new_parents, role_id)

            if item_ids is not None:
                proposed = set(item_ids)
                self._require_items(db, proposed - role.explicit_item_ids)
                self.links.validate_explicit_against_inherited(db, role, proposed, new_parents)

            if "code" in fields:
                ensure_unique_code(db, self.kind.model, fields["code"], self.kind.label, exclude_id=role_id)
            require_references(db, fields, self.kind.references)

            for key, value in fields.items():
                setattr(role, key, value)
            if item_ids is not None:
                role.explicit_item_ids = proposed
            if parent_ids is not None:
                role.parent_ids = new_parents
                self.links.on_parents_changed(db, role_id, old_parents, new_parents)
            role.updated_by = actor

        logger.info("Updated %s %s", self.kind.label.lower(), role_id)
        return role

    def delete(self, db: Session, role_id: int) -> List[int]:
        """Delete a role; returns the ids of descendants removed with it."""
        with transaction(db):
            return self.deletion.delete(db, role_id)

    def add_items(self, db: Session, role_id: int, item_ids: Iterable[int],
                  actor: Optional[str] = None) -> Dict[str, Any]:
        """Add items to the explicit set (additive)."""
        requested = set(item_ids)
        if not requested:
            raise ValidationError(f"At least one {self.kind.item_label} id is required")

        with transaction(db):
            role = self.get(db, role_id, for_update=True)
            existing = role.explicit_item_ids
            self._require_items(db, requested - existing)
            already = sorted(requested & existing)
            newly = sorted(requested - existing)
            if newly:
                role.explicit_item_ids = existing | requested
                role.updated_by = actor

        return {
            "role": role,
            "already_assigned_ids": already,
            "newly_assigned_ids": newly,
            "was_updated": bool(newly),
        }

    def remove_item(self, db: Session, role_id: int, item_id: int,
                    actor: Optional[str] = None) -> Dict[str, Any]:
        """Remove one explicit item. Inherited items cannot be removed."""
        with transaction(db):
            role = self.get(db, role_id, for_update=True)
            existing = role.explicit_item_ids
            self.links.validate_explicit_against_inherited(
                db, role, existing - {item_id}, role.parent_ids, revoked=[item_id],
            )
            was_removed = item_id in existing
            if was_removed:
                role.explicit_item_ids = existing - {item_id}
                role.updated_by = actor

        return {"role": role, "was_removed": was_removed, "was_updated": was_removed}

    def rebuild_child_links(self, db: Session) -> List[int]:
        """Repair every cached child list; returns the rows that changed."""
        with transaction(db):
            return self.links.rebuild_child_links(db)

    # ---- Helpers ----

    def _descriptive(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        allowed = [f for f in _DESCRIPTIVE_FIELDS if hasattr(self.kind.model, f)]
        return {
            k: v for k, v in fields.items()
            if k in allowed and not (v is None and k in _REQUIRED_FIELDS)
        }

    def _require_parents(self, db: Session, parent_ids: Set[int], role_id: Optional[int] = None) -> None:
        if role_id is not None and role_id in parent_ids:
            raise ValidationError(f"{self.kind.label} {role_id} cannot inherit from itself", [role_id])
        missing = missing_ids(db, self.kind.model, parent_ids)
        if missing:
            raise ResourceNotFoundError(
                f"Parent {self.kind.label.lower()}(s) not found: {format_ids(missing)}", missing,
            )

    def _require_items(self, db: Session, item_ids: Set[int]) -> None:
        """Reject ids with no item row. Callers pass only ids new to the role."""
        missing = missing_ids(db, self.kind.item_model, item_ids)
        if missing:
            raise ValidationError(format_missing(self.kind.item_label, missing), missing)


duty_role_service = RoleService(DUTY_ROLE)
job_role_service = RoleService(JOB_ROLE)
