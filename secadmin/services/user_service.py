"""User accounts, job role assignment and access resolution."""

import logging
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from secadmin.core.exceptions import ResourceConflictError, ValidationError
from secadmin.db.session import transaction
from secadmin.models import DutyRole, JobRole, User
from secadmin.services.lookups import fetch_by_ids, format_missing, get_or_404, missing_ids, paginate, summarize
from secadmin.services.role_service import duty_role_service, job_role_service

logger = logging.getLogger("secadmin")


class UserService:
    """Manages users and resolves what they are allowed to do."""

    @staticmethod
    def _check_username(db: Session, username: str, exclude_id: Optional[int] = None) -> None:
        query = db.query(User.id).filter(User.username == username)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first() is not None:
            raise ResourceConflictError(f"Username '{username}' already exists")

    @staticmethod
    def _require_job_roles(db: Session, job_role_ids) -> None:
        missing = missing_ids(db, JobRole, job_role_ids)
        if missing:
            raise ValidationError(format_missing("job role", missing), missing)

    @staticmethod
    def create(
        db: Session,
        username: str,
        full_name: str,
        email: Optional[str] = None,
        status: str = "ACTIVE",
        job_role_ids: Iterable[int] = (),
        actor: Optional[str] = None,
    ) -> User:
        """Create a user with explicit job roles."""
        job_role_ids = set(job_role_ids)
        with transaction(db):
            UserService._check_username(db, username)
            UserService._require_job_roles(db, job_role_ids)
            user = User(
                username=username,
                full_name=full_name,
                email=email,
                status=status,
                created_by=actor,
                updated_by=actor,
            )
            user.job_role_ids = job_role_ids
            db.add(user)
            db.flush()
        logger.info("Created user %s (%s)", user.id, user.username)
        return user

    @staticmethod
    def get(db: Session, user_id: int) -> User:
        """Get a user by id."""
        return get_or_404(db, User, user_id, "User")

    @staticmethod
    def list_users(
        db: Session,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Dict[str, Any]:
        """List users with search and pagination."""
        query = db.query(User)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    User.username.ilike(pattern),
                    User.full_name.ilike(pattern),
                    User.email.ilike(pattern),
                )
            )
        result = paginate(query, User, page, limit, status)
        result["data"] = result.pop("rows")
        return result

    @staticmethod
    def update(db: Session, user_id: int, actor: Optional[str] = None, **kwargs) -> User:
        """Update a user's fields; ``job_role_ids`` replaces the assignment."""
        job_role_ids = kwargs.pop("job_role_ids", None)
        kwargs = {k: v for k, v in kwargs.items() if v is not None}
        if not kwargs and job_role_ids is None:
            raise ValidationError("No fields to update")

        with transaction(db):
            user = get_or_404(db, User, user_id, "User", for_update=True)
            if "username" in kwargs:
                UserService._check_username(db, kwargs["username"], exclude_id=user_id)
            for key, value in kwargs.items():
                if hasattr(user, key):
                    setattr(user, key, value)
            if job_role_ids is not None:
                job_role_ids = set(job_role_ids)
                UserService._require_job_roles(db, job_role_ids - user.job_role_ids)
                user.job_role_ids = job_role_ids
            user.updated_by = actor
        return user

    @staticmethod
    def delete(db: Session, user_id: int) -> None:
        """Delete a user."""
        with transaction(db):
            user = get_or_404(db, User, user_id, "User", for_update=True)
            db.delete(user)

    @staticmethod
    def resolve_access(db: Session, user_id: int) -> Dict[str, Any]:
        """Effective duty roles and function privileges granted through job roles.

        Job roles that no longer exist are ignored.
        """
        user = UserService.get(db, user_id)
        job_roles = fetch_by_ids(db, JobRole, user.job_role_ids)

        duty_role_ids = set()
        for job_role in job_roles:
            duty_role_ids.update(item["id"] for item in job_role_service.effective_items(db, job_role))
        duty_roles = fetch_by_ids(db, DutyRole, duty_role_ids)

        privileges: Dict[int, Dict[str, Any]] = {}
        for duty_role in duty_roles:
            for item in duty_role_service.effective_items(db, duty_role):
                item.pop("inherited", None)
                privileges.setdefault(item["id"], item)

        return {
            "user_id": user.id,
            "username": user.username,
            "job_roles": summarize(job_roles),
            "duty_roles": summarize(duty_roles),
            "privileges": [privileges[k] for k in sorted(privileges)],
        }


user_service = UserService()
