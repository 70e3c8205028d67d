from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from secadmin.core.exceptions import (
    ResourceConflictError,
    ResourceNotFoundError,
    TransactionError,
    ValidationError,
)
from secadmin.models import DutyRole, JobRole, User
from secadmin.services.catalog_service import privilege_service
from secadmin.services.role_service import duty_role_service, job_role_service
from secadmin.services.user_service import user_service


def effective(db, role, service=duty_role_service):
    return {item["id"]: item["inherited"] for item in service.effective_items(db, role)}


def assert_links_consistent(db, model):
    rows = db.query(model).all()
    for row in rows:
        expected = {r.id for r in rows if row.id in r.parent_ids}
        assert row.child_ids == expected, f"{row!r} children {row.child_ids} != {expected}"


def failing_commit():
    return MagicMock(side_effect=OperationalError("COMMIT", {}, Exception("connection lost")))


# ---- Effective sets ----

def test_root_role_has_only_explicit_items(db, privilege_ids, make_duty_role):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1], p[2]])

    assert effective(db, d1) == {p[1]: False, p[2]: False}


def test_child_inherits_parent_items(db, privilege_ids, make_duty_role):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1], p[2]])
    d2 = make_duty_role("D2", items=[p[3]], parents=[d1.id])

    assert effective(db, d2) == {p[1]: True, p[2]: True, p[3]: False}
    assert d1.child_ids == {d2.id}
    assert_links_consistent(db, DutyRole)


def test_items_inherited_through_several_levels(db, privilege_ids, make_duty_role):
    p = privilege_ids
    c = make_duty_role("C", items=[p[1]])
    b = make_duty_role("B", items=[p[2]], parents=[c.id])
    a = make_duty_role("A", items=[p[3]], parents=[b.id])

    assert effective(db, a) == {p[1]: True, p[2]: True, p[3]: False}


def test_item_both_explicit_and_inherited_is_reported_inherited(db, privilege_ids, make_duty_role):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1]])
    d2 = make_duty_role("D2", items=[p[1], p[3]], parents=[d1.id])

    assert effective(db, d2) == {p[1]: True, p[3]: False}


def test_cycle_between_roles_terminates(db, privilege_ids, make_duty_role):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1]])
    d2 = make_duty_role("D2", items=[p[2]], parents=[d1.id])
    duty_role_service.update(db, d1.id, parent_ids=[d2.id])

    assert effective(db, d1) == {p[1]: False, p[2]: True}
    assert effective(db, d2) == {p[1]: True, p[2]: False}
    assert_links_consistent(db, DutyRole)


def test_effective_items_fall_back_to_explicit_on_database_error(db, privilege_ids, make_duty_role, monkeypatch):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1]])
    d2 = make_duty_role("D2", items=[p[2]], parents=[d1.id])

    broken = MagicMock()
    broken.resolve_inherited_items.side_effect = OperationalError("SELECT", {}, Exception("timeout"))
    monkeypatch.setattr(duty_role_service.links, "graph", MagicMock(return_value=broken))

    assert effective(db, d2) == {p[2]: False}


# ---- Updates and the inherited-removal guard ----

def test_update_keeping_explicit_items_succeeds(db, privilege_ids, make_duty_role):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1], p[2]])
    d2 = make_duty_role("D2", items=[p[3]], parents=[d1.id])

    duty_role_service.update(db, d2.id, item_ids=[p[3]])
    assert d2.explicit_item_ids == {p[3]}

    # dropping a purely explicit item is allowed
    duty_role_service.update(db, d2.id, item_ids=[])
    assert d2.explicit_item_ids == set()
    assert effective(db, d2) == {p[1]: True, p[2]: True}


def test_update_dropping_inherited_item_fails_and_keeps_row(db, privilege_ids, make_duty_role):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1], p[2]])
    d2 = make_duty_role("D2", items=[p[1], p[3]], parents=[d1.id])

    with pytest.raises(ValidationError) as exc:
        duty_role_service.update(db, d2.id, item_ids=[p[3]])

    assert exc.value.details == [p[1]]
    assert "Inherited function privileges cannot be removed" in exc.value.message
    db.expire_all()
    assert db.get(DutyRole, d2.id).explicit_item_ids == {p[1], p[3]}


def test_update_checks_against_new_parents(db, privilege_ids, make_duty_role):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1]])
    d2 = make_duty_role("D2", items=[p[1], p[3]], parents=[d1.id])

    # p1 is no longer inherited once d1 is dropped, so it may go
    duty_role_service.update(db, d2.id, item_ids=[p[3]], parent_ids=[])
    assert d2.explicit_item_ids == {p[3]}
    assert d2.parent_ids == set()
    assert d1.child_ids == set()


def test_update_relinks_parents(db, privilege_ids, make_duty_role):
    d1 = make_duty_role("D1")
    d2 = make_duty_role("D2")
    d3 = make_duty_role("D3", parents=[d1.id])

    duty_role_service.update(db, d3.id, parent_ids=[d2.id])

    assert d1.child_ids == set()
    assert d2.child_ids == {d3.id}
    assert_links_consistent(db, DutyRole)


def test_update_with_multiple_parents(db, make_duty_role):
    d1 = make_duty_role("D1")
    d2 = make_duty_role("D2")
    d3 = make_duty_role("D3", parents=[d1.id])

    duty_role_service.update(db, d3.id, parent_ids=[d1.id, d2.id])
    duty_role_service.update(db, d3.id, parent_ids=[d2.id])

    assert d1.child_ids == set()
    assert d2.child_ids == {d3.id}
    assert_links_consistent(db, DutyRole)


def test_update_descriptive_fields_only(db, make_duty_role):
    d1 = make_duty_role("D1")

    duty_role_service.update(db, d1.id, {"name": "Renamed", "status": "INACTIVE"}, actor="alice")

    assert d1.name == "Renamed"
    assert d1.status == "INACTIVE"
    assert d1.updated_by == "alice"


def test_update_without_fields_fails(db, make_duty_role):
    d1 = make_duty_role("D1")
    with pytest.raises(ValidationError, match="No fields to update"):
        duty_role_service.update(db, d1.id, {})


def test_role_cannot_inherit_from_itself(db, make_duty_role):
    d1 = make_duty_role("D1")
    with pytest.raises(ValidationError):
        duty_role_service.update(db, d1.id, parent_ids=[d1.id])


def test_update_missing_role_is_not_found(db):
    with pytest.raises(ResourceNotFoundError):
        duty_role_service.update(db, 404, {"name": "x"})


# ---- Create validation ----

def test_create_with_missing_parent_is_not_found(db, make_duty_role):
    with pytest.raises(ResourceNotFoundError) as exc:
        make_duty_role("D1", parents=[999])
    assert exc.value.details == [999]
    assert db.query(DutyRole).count() == 0


def test_create_with_unknown_item_is_rejected(db, make_duty_role):
    with pytest.raises(ValidationError) as exc:
        make_duty_role("D1", items=[999])
    assert exc.value.details == [999]


def test_create_with_duplicate_code_conflicts(db, make_duty_role):
    make_duty_role("D1")
    with pytest.raises(ResourceConflictError):
        make_duty_role("D1")


def test_create_records_actor(db, make_duty_role):
    d1 = make_duty_role("D1")
    assert d1.created_by == "tester"
    assert d1.status == "ACTIVE"


def test_create_rolls_back_when_commit_fails(db, make_duty_role, monkeypatch):
    d1 = make_duty_role("D1")

    monkeypatch.setattr(db, "commit", failing_commit())
    with pytest.raises(TransactionError):
        make_duty_role("D2", parents=[d1.id])
    monkeypatch.undo()

    assert db.query(DutyRole).filter(DutyRole.code == "D2").first() is None
    assert db.get(DutyRole, d1.id).child_ids == set()


def test_update_rolls_back_when_commit_fails(db, privilege_ids, make_duty_role, monkeypatch):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1]])
    d2 = make_duty_role("D2")

    monkeypatch.setattr(db, "commit", failing_commit())
    with pytest.raises(TransactionError):
        duty_role_service.update(db, d2.id, item_ids=[p[2]], parent_ids=[d1.id])
    monkeypatch.undo()

    d2 = db.get(DutyRole, d2.id)
    assert d2.explicit_item_ids == set()
    assert d2.parent_ids == set()
    assert db.get(DutyRole, d1.id).child_ids == set()


# ---- Deletion ----

def test_delete_role_with_parents_fails_without_changes(db, make_duty_role):
    d1 = make_duty_role("D1")
    d2 = make_duty_role("D2", parents=[d1.id])

    with pytest.raises(ValidationError) as exc:
        duty_role_service.delete(db, d2.id)

    assert exc.value.details == [d1.id]
    assert "Delete all parent roles first" in exc.value.message
    assert db.get(DutyRole, d2.id) is not None
    assert db.get(DutyRole, d1.id).child_ids == {d2.id}


def test_delete_root_cascades_to_only_child(db, privilege_ids, make_duty_role):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1], p[2]])
    d2 = make_duty_role("D2", items=[p[3]], parents=[d1.id])
    d2_id = d2.id

    cascaded = duty_role_service.delete(db, d1.id)

    assert cascaded == [d2_id]
    assert db.query(DutyRole).count() == 0


def test_delete_root_keeps_child_with_other_parent(db, privilege_ids, make_duty_role):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1]])
    d3 = make_duty_role("D3", items=[p[2]])
    d2 = make_duty_role("D2", items=[p[3]], parents=[d1.id, d3.id])

    cascaded = duty_role_service.delete(db, d1.id)

    assert cascaded == []
    assert d2.parent_ids == {d3.id}
    assert d3.child_ids == {d2.id}
    assert effective(db, d2) == {p[2]: True, p[3]: False}
    assert_links_consistent(db, DutyRole)


def test_delete_cascades_through_all_levels(db, make_duty_role):
    d1 = make_duty_role("D1")
    d2 = make_duty_role("D2", parents=[d1.id])
    d3 = make_duty_role("D3", parents=[d2.id])
    ids = [d2.id, d3.id]

    assert duty_role_service.delete(db, d1.id) == sorted(ids)
    assert db.query(DutyRole).count() == 0


def test_cascade_stops_at_role_with_surviving_parent(db, make_duty_role):
    root = make_duty_role("ROOT")
    other = make_duty_role("OTHER")
    child = make_duty_role("CHILD", parents=[root.id])
    grandchild = make_duty_role("GRANDCHILD", parents=[child.id, other.id])
    child_id = child.id

    assert duty_role_service.delete(db, root.id) == [child_id]

    assert grandchild.parent_ids == {other.id}
    assert other.child_ids == {grandchild.id}
    assert_links_consistent(db, DutyRole)


def test_delete_rolls_back_when_commit_fails(db, make_duty_role, make_job_role, monkeypatch):
    d1 = make_duty_role("D1")
    d3 = make_duty_role("D3")
    d2 = make_duty_role("D2", parents=[d1.id])
    d4 = make_duty_role("D4", parents=[d1.id, d3.id])
    job = make_job_role("JOB", items=[d2.id])
    ids = {name: role.id for name, role in [("d1", d1), ("d2", d2), ("d3", d3), ("d4", d4)]}

    monkeypatch.setattr(db, "commit", failing_commit())
    with pytest.raises(TransactionError):
        duty_role_service.delete(db, ids["d1"])
    monkeypatch.undo()

    assert db.query(DutyRole).count() == 4
    assert db.get(DutyRole, ids["d4"]).parent_ids == {ids["d1"], ids["d3"]}
    assert db.get(DutyRole, ids["d1"]).child_ids == {ids["d2"], ids["d4"]}
    assert db.get(JobRole, job.id).explicit_item_ids == {ids["d2"]}
    assert_links_consistent(db, DutyRole)


def test_delete_missing_role_is_not_found(db):
    with pytest.raises(ResourceNotFoundError):
        duty_role_service.delete(db, 404)


# ---- Item assignment ----

def test_add_items_reports_already_and_newly_assigned(db, privilege_ids, make_duty_role):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1]])

    result = duty_role_service.add_items(db, d1.id, [p[1], p[2]], actor="bob")

    assert result["already_assigned_ids"] == [p[1]]
    assert result["newly_assigned_ids"] == [p[2]]
    assert result["was_updated"] is True
    assert d1.explicit_item_ids == {p[1], p[2]}
    assert d1.updated_by == "bob"


def test_add_items_already_present_is_not_an_update(db, privilege_ids, make_duty_role):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1]])

    result = duty_role_service.add_items(db, d1.id, [p[1]])
    assert result["was_updated"] is False


def test_add_unknown_item_is_rejected(db, make_duty_role):
    d1 = make_duty_role("D1")
    with pytest.raises(ValidationError):
        duty_role_service.add_items(db, d1.id, [999])


def test_remove_explicit_item(db, privilege_ids, make_duty_role):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1], p[2]])

    result = duty_role_service.remove_item(db, d1.id, p[1])

    assert result["was_removed"] is True
    assert d1.explicit_item_ids == {p[2]}


def test_remove_absent_item_is_a_no_op(db, privilege_ids, make_duty_role):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1]])

    result = duty_role_service.remove_item(db, d1.id, p[5])
    assert result == {"role": d1, "was_removed": False, "was_updated": False}


def test_remove_inherited_item_is_refused(db, privilege_ids, make_duty_role):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1]])
    d2 = make_duty_role("D2", items=[p[3]], parents=[d1.id])

    with pytest.raises(ValidationError) as exc:
        duty_role_service.remove_item(db, d2.id, p[1])
    assert exc.value.details == [p[1]]


# ---- Listing ----

def test_list_roles_filters_and_counts_activity(db, privilege_ids, make_duty_role):
    p = privilege_ids
    make_duty_role("GL_VIEW", items=[p[1]])
    make_duty_role("GL_POST", status="INACTIVE")
    make_duty_role("AP_CLERK")

    result = duty_role_service.list_roles(db, search="gl", status="ACTIVE")

    assert result["total"] == 1
    assert result["activity"] == {"total_active": 1, "total_inactive": 1}
    assert [r["code"] for r in result["data"]] == ["GL_VIEW"]
    assert result["data"][0]["items"][0]["id"] == p[1]


def test_list_roles_paginates(db, make_duty_role):
    for n in range(5):
        make_duty_role(f"R{n}")

    result = duty_role_service.list_roles(db, page=2, limit=2)

    assert result["total"] == 5
    assert result["total_pages"] == 3
    assert [r["code"] for r in result["data"]] == ["R2", "R3"]


def test_job_roles_cannot_be_filtered_by_module(db):
    with pytest.raises(ValidationError):
        job_role_service.list_roles(db, module_id=1)


# ---- Link repair ----

def test_rebuild_child_links_repairs_drift(db, make_duty_role):
    d1 = make_duty_role("D1")
    d2 = make_duty_role("D2", parents=[d1.id])
    d1.child_ids = {999}
    d2.parent_ids = {d1.id, 998}
    db.commit()

    changed = duty_role_service.rebuild_child_links(db)

    assert changed == sorted([d1.id, d2.id])
    assert d1.child_ids == {d2.id}
    assert d2.parent_ids == {d1.id}
    assert duty_role_service.rebuild_child_links(db) == []


# ---- Job roles ----

def test_job_roles_inherit_duty_roles(db, make_duty_role, make_job_role):
    gl = make_duty_role("GL")
    ap = make_duty_role("AP")
    accountant = make_job_role("ACCOUNTANT", items=[gl.id])
    controller = make_job_role("CONTROLLER", items=[ap.id], parents=[accountant.id])

    assert effective(db, controller, job_role_service) == {gl.id: True, ap.id: False}
    assert accountant.child_ids == {controller.id}

    controller_id = controller.id
    assert job_role_service.delete(db, accountant.id) == [controller_id]
    assert db.query(JobRole).count() == 0


# ---- Grants of deleted records ----

def test_deleting_duty_roles_revokes_them_from_job_roles(db, make_duty_role, make_job_role):
    gl = make_duty_role("GL")
    glc = make_duty_role("GLC", parents=[gl.id])
    ap = make_duty_role("AP")
    accounting = make_job_role("ACC", items=[glc.id, ap.id])
    other = make_job_role("OTHER", items=[ap.id])

    duty_role_service.delete(db, gl.id)

    assert accounting.explicit_item_ids == {ap.id}
    assert other.explicit_item_ids == {ap.id}
    # the stored ids read back from the role are accepted as-is
    job_role_service.update(db, accounting.id, {"name": "Accounting"},
                            item_ids=accounting.explicit_item_ids)
    assert accounting.name == "Accounting"


def test_deleting_job_roles_revokes_them_from_users(db, make_job_role):
    accountant = make_job_role("ACCOUNTANT")
    controller = make_job_role("CONTROLLER", parents=[accountant.id])
    auditor = make_job_role("AUDITOR")
    user = user_service.create(db, "jdoe", "Jane Doe", job_role_ids=[controller.id, auditor.id])

    job_role_service.delete(db, accountant.id)

    assert db.get(User, user.id).job_role_ids == {auditor.id}
    user_service.update(db, user.id, job_role_ids=db.get(User, user.id).job_role_ids)


def test_deleting_privilege_revokes_it_from_duty_roles(db, privilege_ids, make_duty_role):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1], p[2]])
    d2 = make_duty_role("D2", items=[p[1]], parents=[d1.id])

    privilege_service.delete(db, p[1])

    assert d1.explicit_item_ids == {p[2]}
    assert d2.explicit_item_ids == set()
    assert effective(db, d2) == {p[2]: True}


def test_update_keeps_stale_item_ids_already_stored(db, privilege_ids, make_duty_role):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1]])
    d1.explicit_item_ids = {p[1], 999}
    db.commit()

    duty_role_service.update(db, d1.id, item_ids=[p[1], p[2], 999])
    assert d1.explicit_item_ids == {p[1], p[2], 999}

    with pytest.raises(ValidationError) as exc:
        duty_role_service.update(db, d1.id, item_ids=[p[1], 998])
    assert exc.value.details == [998]


def test_add_items_only_checks_new_ids(db, privilege_ids, make_duty_role):
    p = privilege_ids
    d1 = make_duty_role("D1", items=[p[1]])
    d1.explicit_item_ids = {p[1], 999}
    db.commit()

    result = duty_role_service.add_items(db, d1.id, [999, p[2]])

    assert result["already_assigned_ids"] == [999]
    assert result["newly_assigned_ids"] == [p[2]]
