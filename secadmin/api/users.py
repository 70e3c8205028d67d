"""Users API router."""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from secadmin.api.deps import get_actor
from secadmin.core.config import settings
from secadmin.db.session import get_db
from secadmin.models.user import User
from secadmin.schemas.schemas import (
    UserCreate, UserUpdate, UserOut, UserAccessOut, MessageResponse, StatusEnum,
)
from secadmin.services.user_service import user_service

router = APIRouter(prefix="/users", tags=["users"])


def _out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        username=user.username,
        full_name=user.full_name,
        email=user.email,
        status=user.status,
        job_role_ids=sorted(user.job_role_ids),
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


@router.get("/")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: Optional[str] = Query(None),
    status: Optional[StatusEnum] = Query(None),
    db: Session = Depends(get_db),
):
    """List users."""
    result = user_service.list_users(db, page, limit, search, status.value if status else None)
    result["data"] = [_out(u) for u in result["data"]]
    return result


@router.post("/", response_model=UserOut)
async def create_user(
    body: UserCreate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Create a user."""
    user = user_service.create(
        db, body.username, body.full_name, body.email,
        body.status.value, body.job_roles, actor,
    )
    return _out(user)


@router.get("/{user_id}", response_model=UserOut)
async def get_user(user_id: int, db: Session = Depends(get_db)):
    """Get a user."""
    return _out(user_service.get(db, user_id))


@router.get("/{user_id}/access", response_model=UserAccessOut)
async def get_user_access(user_id: int, db: Session = Depends(get_db)):
    """Effective duty roles and function privileges of a user."""
    return user_service.resolve_access(db, user_id)


@router.put("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: int,
    body: UserUpdate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Update a user; ``job_roles`` replaces the assignment."""
    fields = body.model_dump(mode="json", exclude_unset=True)
    if "job_roles" in fields:
        fields["job_role_ids"] = fields.pop("job_roles")
    user = user_service.update(db, user_id, actor=actor, **fields)
    return _out(user)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: int, db: Session = Depends(get_db)):
    """Delete a user."""
    user_service.delete(db, user_id)
    return MessageResponse(message="User deleted")
