"""Catalog API routers for modules, functions, operations and function privileges."""

from typing import Optional, Sequence, Type
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from secadmin.api.deps import get_actor
from secadmin.core.config import settings
from secadmin.db.session import get_db
from secadmin.schemas.schemas import (
    CatalogCreate, CatalogUpdate, CatalogOut, FunctionCreate, FunctionUpdate, FunctionOut,
    PrivilegeCreate, PrivilegeUpdate, PrivilegeOut, MessageResponse, StatusEnum,
)
from secadmin.services.catalog_service import (
    CatalogService, function_service, module_service, operation_service, privilege_service,
)


def build_catalog_router(
    prefix: str,
    service: CatalogService,
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    out_schema: Type[BaseModel],
    filter_fields: Sequence[str] = (),
) -> APIRouter:
    """CRUD router for one catalog table."""
    router = APIRouter(prefix=prefix, tags=[prefix.strip("/")])

    @router.get("/")
    async def list_records(
        page: int = Query(1, ge=1),
        limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
        search: Optional[str] = Query(None),
        status: Optional[StatusEnum] = Query(None),
        module_id: Optional[int] = Query(None),
        function_id: Optional[int] = Query(None),
        operation_id: Optional[int] = Query(None),
        db: Session = Depends(get_db),
    ):
        requested = {"module_id": module_id, "function_id": function_id, "operation_id": operation_id}
        filters = {k: v for k, v in requested.items() if k in filter_fields}
        result = service.list_records(
            db, page, limit, search, status.value if status else None, **filters,
        )
        result["data"] = [out_schema.model_validate(r) for r in result["data"]]
        return result

    @router.post("/", response_model=out_schema)
    async def create_record(
        body: create_schema,
        db: Session = Depends(get_db),
        actor: str = Depends(get_actor),
    ):
        return service.create(db, body.model_dump(mode="json"), actor)

    @router.get("/{record_id}", response_model=out_schema)
    async def get_record(record_id: int, db: Session = Depends(get_db)):
        return service.get(db, record_id)

    @router.put("/{record_id}", response_model=out_schema)
    async def update_record(
        record_id: int,
        body: update_schema,
        db: Session = Depends(get_db),
        actor: str = Depends(get_actor),
    ):
        return service.update(db, record_id, body.model_dump(mode="json", exclude_unset=True), actor)

    @router.delete("/{record_id}", response_model=MessageResponse)
    async def delete_record(record_id: int, db: Session = Depends(get_db)):
        service.delete(db, record_id)
        return MessageResponse(message=f"{service.label} deleted")

    return router


modules_router = build_catalog_router(
    "/modules", module_service, CatalogCreate, CatalogUpdate, CatalogOut,
)
functions_router = build_catalog_router(
    "/functions", function_service, FunctionCreate, FunctionUpdate, FunctionOut,
    filter_fields=("module_id",),
)
operations_router = build_catalog_router(
    "/operations", operation_service, CatalogCreate, CatalogUpdate, CatalogOut,
)
privileges_router = build_catalog_router(
    "/function-privileges", privilege_service, PrivilegeCreate, PrivilegeUpdate, PrivilegeOut,
    filter_fields=("module_id", "function_id", "operation_id"),
)
