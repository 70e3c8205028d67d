"""Duty role and job role API routers."""

from typing import Optional, Type
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from secadmin.api.deps import get_actor
from secadmin.core.config import settings
from secadmin.db.session import get_db
from secadmin.schemas.schemas import (
    DutyRoleCreate, DutyRoleUpdate, JobRoleCreate, JobRoleUpdate,
    RoleOut, RoleListResponse, RoleDeleteResponse,
    ItemIdsRequest, ItemsAddedResponse, ItemRemovedResponse, LinkRepairResponse, StatusEnum,
)
from secadmin.services.role_service import RoleService, duty_role_service, job_role_service


def build_role_router(
    prefix: str,
    service: RoleService,
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    item_field: str,
    parent_field: str,
    item_segment: str,
) -> APIRouter:
    """CRUD, item assignment and link repair for one role kind.

    ``item_field`` and ``parent_field`` name the request body lists holding
    the explicit items and the parents; ``item_segment`` is the sub-path for
    adding and removing items.
    """
    router = APIRouter(prefix=prefix, tags=[prefix.strip("/")])
    label = service.kind.label
    link_fields = {item_field, parent_field}

    def _out(db: Session, role) -> RoleOut:
        return RoleOut(**service.to_dict(db, role))

    @router.get("/", response_model=RoleListResponse)
    async def list_roles(
        page: int = Query(1, ge=1),
        limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
        search: Optional[str] = Query(None),
        code: Optional[str] = Query(None),
        name: Optional[str] = Query(None),
        status: Optional[StatusEnum] = Query(None),
        module_id: Optional[int] = Query(None),
        db: Session = Depends(get_db),
    ):
        """List roles with their effective items."""
        return service.list_roles(
            db, page, limit, search, code, name,
            status.value if status else None, module_id,
        )

    @router.post("/", response_model=RoleOut)
    async def create_role(
        body: create_schema,
        db: Session = Depends(get_db),
        actor: str = Depends(get_actor),
    ):
        """Create a role under zero or more parent roles."""
        role = service.create(
            db,
            body.model_dump(mode="json", exclude=link_fields),
            item_ids=getattr(body, item_field),
            parent_ids=getattr(body, parent_field),
            actor=actor,
        )
        return _out(db, role)

    @router.post("/repair-links", response_model=LinkRepairResponse)
    async def repair_links(db: Session = Depends(get_db)):
        """Rebuild cached child lists from parent lists."""
        return LinkRepairResponse(changed_ids=service.rebuild_child_links(db))

    @router.post(f"/{{role_id}}/{item_segment}", response_model=ItemsAddedResponse)
    async def add_items(
        role_id: int,
        body: ItemIdsRequest,
        db: Session = Depends(get_db),
        actor: str = Depends(get_actor),
    ):
        """Add items to a role (additive)."""
        result = service.add_items(db, role_id, body.ids, actor)
        result["role"] = _out(db, result["role"])
        return result

    @router.delete(f"/{{role_id}}/{item_segment}/{{item_id}}", response_model=ItemRemovedResponse)
    async def remove_item(
        role_id: int,
        item_id: int,
        db: Session = Depends(get_db),
        actor: str = Depends(get_actor),
    ):
        """Remove an explicit item. Inherited ones are refused."""
        result = service.remove_item(db, role_id, item_id, actor)
        result["role"] = _out(db, result["role"])
        return result

    @router.get("/{role_id}", response_model=RoleOut)
    async def get_role(role_id: int, db: Session = Depends(get_db)):
        """Get a role with effective items, parents and children."""
        return _out(db, service.get(db, role_id))

    @router.put("/{role_id}", response_model=RoleOut)
    async def update_role(
        role_id: int,
        body: update_schema,
        db: Session = Depends(get_db),
        actor: str = Depends(get_actor),
    ):
        """Update a role; parent changes are mirrored onto the parents."""
        role = service.update(
            db,
            role_id,
            body.model_dump(mode="json", exclude_unset=True, exclude=link_fields),
            item_ids=getattr(body, item_field),
            parent_ids=getattr(body, parent_field),
            actor=actor,
        )
        return _out(db, role)

    @router.delete("/{role_id}", response_model=RoleDeleteResponse)
    async def delete_role(role_id: int, db: Session = Depends(get_db)):
        """Delete a role that has no parents; orphaned children go with it."""
        cascaded = service.delete(db, role_id)
        return RoleDeleteResponse(message=f"{label} deleted", cascaded_ids=cascaded)

    return router


duty_roles_router = build_role_router(
    "/duty-roles", duty_role_service, DutyRoleCreate, DutyRoleUpdate,
    item_field="function_privileges",
    parent_field="inherited_from_roles",
    item_segment="privileges",
)
job_roles_router = build_role_router(
    "/job-roles", job_role_service, JobRoleCreate, JobRoleUpdate,
    item_field="duty_roles",
    parent_field="inherited_from",
    item_segment="duty-roles",
)
