"""Seed demo users."""

from sqlalchemy.orm import Session
from secadmin.models import JobRole, User
from secadmin.services.user_service import user_service

DEMO_USERS = [
    ("jdoe", "Jane Doe", "jdoe@example.com", ["CONTROLLER"]),
    ("asmith", "Alex Smith", "asmith@example.com", ["ACCOUNTANT"]),
]


def seed_users(db: Session) -> None:
    """Create demo users if not already present."""
    for username, full_name, email, job_role_codes in DEMO_USERS:
        if db.query(User.id).filter(User.username == username).first():
            print(f"ℹ️  User '{username}' already exists, skipping.")
            continue
        job_role_ids = [
            r.id for r in db.query(JobRole).filter(JobRole.code.in_(job_role_codes)).all()
        ]
        user_service.create(db, username, full_name, email, job_role_ids=job_role_ids, actor="SEED")
        print(f"✅ Created user: {username}")
