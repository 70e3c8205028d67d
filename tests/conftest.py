import pytest
from fastapi.testclient import TestClient

from secadmin.core.config import Settings
from secadmin.db.session import Database
from secadmin.main import create_app
from secadmin.models import FunctionPrivilege
from secadmin.services.role_service import duty_role_service, job_role_service


@pytest.fixture
def database():
    database = Database(url="sqlite://")
    database.create_all()
    yield database
    database.drop_all()
    database.dispose()


@pytest.fixture
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def privilege_ids(db):
    """Ten function privileges P1..P10; ``privilege_ids[n]`` is the id of Pn."""
    ids = {}
    for n in range(1, 11):
        privilege = FunctionPrivilege(code=f"P{n}", name=f"Privilege {n}")
        db.add(privilege)
        db.flush()
        ids[n] = privilege.id
    db.commit()
    return ids


@pytest.fixture
def make_duty_role(db):
    def make(code, items=(), parents=(), **fields):
        return duty_role_service.create(
            db, {"code": code, "name": code.title(), **fields},
            item_ids=items, parent_ids=parents, actor="tester",
        )
    return make


@pytest.fixture
def make_job_role(db):
    def make(code, items=(), parents=()):
        return job_role_service.create(
            db, {"code": code, "name": code.title()},
            item_ids=items, parent_ids=parents, actor="tester",
        )
    return make


@pytest.fixture
def client(database):
    app = create_app(Settings(DEFAULT_ACTOR="api-test"), database=database)
    with TestClient(app) as client:
        yield client
