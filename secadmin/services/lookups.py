"""Query helpers shared by the services."""

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Type

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from secadmin.core.exceptions import ResourceConflictError, ResourceNotFoundError, format_ids

STATUSES = ("ACTIVE", "INACTIVE")


@dataclass(frozen=True)
class Grant:
    """An id-array column on ``model`` holding ids of another table.

    ``column`` is the mapped column attribute, ``ids_attr`` the decoded set
    property over it.
    """

    model: Type
    column: str
    ids_attr: str


def get_or_404(db: Session, model: Type, record_id: int, label: str, for_update: bool = False):
    """Load one row by primary key or raise ResourceNotFoundError."""
    query = db.query(model).filter(model.id == record_id)
    if for_update:
        query = query.with_for_update()
    record = query.first()
    if record is None:
        raise ResourceNotFoundError(f"{label} {record_id} not found", [record_id])
    return record


def fetch_by_ids(db: Session, model: Type, ids: Iterable[int]) -> List[Any]:
    """Batched lookup by id, ordered by id. Missing ids are simply absent."""
    ids = sorted(set(ids))
    if not ids:
        return []
    return db.query(model).filter(model.id.in_(ids)).order_by(model.id).all()


def missing_ids(db: Session, model: Type, ids: Iterable[int]) -> Set[int]:
    ids = set(ids)
    if not ids:
        return set()
    found = {row_id for (row_id,) in db.query(model.id).filter(model.id.in_(sorted(ids))).all()}
    return ids - found


def require_references(db: Session, data: Mapping[str, Any], references: Mapping[str, tuple]) -> None:
    """Check that foreign ids in ``data`` point at existing rows.

    ``references`` maps a field name to ``(model, label)``.
    """
    for field, (model, label) in references.items():
        value = data.get(field)
        if value is None:
            continue
        if db.query(model.id).filter(model.id == value).first() is None:
            raise ResourceNotFoundError(f"{label} {value} not found", [value])


def ensure_unique_code(db: Session, model: Type, code: Optional[str], label: str,
                       exclude_id: Optional[int] = None) -> None:
    if code is None:
        return
    query = db.query(model.id).filter(model.code == code)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first() is not None:
        raise ResourceConflictError(f"{label} code '{code}' already exists")


def summarize(records: Iterable[Any]) -> List[Dict[str, Any]]:
    return [
        {"id": r.id, "code": r.code, "name": r.name, "status": r.status}
        for r in records
    ]


def apply_search(query: Query, model: Type, search: Optional[str] = None,
                 code: Optional[str] = None, name: Optional[str] = None) -> Query:
    """Case-insensitive partial match on code/name/description."""
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                model.name.ilike(pattern),
                model.code.ilike(pattern),
                model.description.ilike(pattern),
            )
        )
    if code:
        query = query.filter(model.code.ilike(f"%{code}%"))
    if name:
        query = query.filter(model.name.ilike(f"%{name}%"))
    return query


def paginate(query: Query, model: Type, page: int, limit: int,
             status: Optional[str] = None) -> Dict[str, Any]:
    """Page through ``query`` and count active/inactive rows.

    The activity counts ignore the status filter so both numbers stay
    visible while one status is selected.
    """
    activity = {
        "total_active": query.filter(model.status == "ACTIVE").count(),
        "total_inactive": query.filter(model.status == "INACTIVE").count(),
    }
    if status:
        query = query.filter(model.status == status)

    total = query.count()
    rows = (
        query.order_by(model.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "rows": rows,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if limit else 0,
        "activity": activity,
    }


def format_missing(label: str, ids: Iterable[int]) -> str:
    return f"Unknown {label} id(s): {format_ids(ids)}"


def revoke_grants(db: Session, grants: Iterable[Grant], ids: Iterable[int]) -> List[Any]:
    """Remove ``ids`` from every row that grants them; returns the rows changed.

    Writes through the caller's session and never commits.
    """
    ids = set(ids)
    changed: List[Any] = []
    if not ids:
        return changed
    for grant in grants:
        column = getattr(grant.model, grant.column)
        rows = db.query(grant.model).filter(column.isnot(None)).with_for_update().all()
        for row in rows:
            granted = getattr(row, grant.ids_attr)
            if granted & ids:
                setattr(row, grant.ids_attr, granted - ids)
                changed.append(row)
    return changed
