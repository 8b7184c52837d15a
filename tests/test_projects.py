"""Tests for projects, their tasks and labour payroll."""

import pytest

from buildtrack.core.errors import NotFoundError, RuleViolation
from buildtrack.crud.labour import (
    create_labour,
    create_payroll,
    delete_labour,
    list_labours,
    list_payroll,
    update_payroll,
)
from buildtrack.crud.projects import (
    create_project,
    create_task,
    delete_project,
    list_projects,
    list_tasks,
    project_stats,
    set_task_status,
    update_project,
    update_task,
)
from buildtrack.models.material import Material


def test_project_defaults_and_validation(db_session, user):
    project = create_project(
        db_session,
        {"name": "  Harbour Bridge Annex ", "description": "  ", "owner_user_id": user.id, "budget": 250000.0},
    )

    assert project.name == "Harbour Bridge Annex"
    assert project.status == "PLANNED"
    assert project.description is None

    with pytest.raises(RuleViolation, match="name is required"):
        create_project(db_session, {"name": " "})
    with pytest.raises(RuleViolation, match="end_date"):
        create_project(db_session, {"name": "Backwards", "start_date": "2026-05-01", "end_date": "2026-04-01"})
    with pytest.raises(RuleViolation, match="status"):
        create_project(db_session, {"name": "Odd", "status": "DREAMING"})
    with pytest.raises(NotFoundError):
        create_project(db_session, {"name": "Orphan", "owner_user_id": 999})


def test_update_and_list_projects(db_session, project):
    update_project(db_session, project, {"status": "on_hold", "end_date": "2027-01-01"})
    create_project(db_session, {"name": "Lakeside Villas", "status": "ACTIVE"})

    assert project.status == "ON_HOLD"
    assert list_projects(db_session, status="active").total == 1
    assert [p.name for p in list_projects(db_session, search="river").items] == ["Riverside Towers"]
    with pytest.raises(RuleViolation, match="end_date"):
        update_project(db_session, project, {"start_date": "2027-06-01"})


def test_project_with_materials_cannot_be_deleted(db_session, project):
    db_session.add(Material(name="Binding wire", project_id=project.id, stock_qty=3))
    db_session.commit()

    with pytest.raises(RuleViolation, match="materials assigned"):
        delete_project(db_session, project)


def test_tasks_and_stats(db_session, user, project):
    first = create_task(db_session, {"project_id": project.id, "title": "Excavation", "assigned_user_id": user.id})
    second = create_task(db_session, {"project_id": project.id, "title": "Footings", "priority": "high", "milestone": True})
    create_task(db_session, {"project_id": project.id, "title": "Columns", "status": "in_progress"})
    db_session.add(Material(name="Sand", project_id=project.id, stock_qty=10, cost_per_unit=45.0))
    db_session.commit()

    assert first.status == "TODO"
    assert second.priority == "HIGH"
    assert second.milestone is True
    set_task_status(db_session, first, "done")
    update_task(db_session, second, {"status": "DONE", "description": "Poured"})

    stats = project_stats(db_session, project)
    assert stats["total_tasks"] == 3
    assert stats["tasks_by_status"] == {"TODO": 0, "IN_PROGRESS": 1, "BLOCKED": 0, "DONE": 2}
    assert stats["completion_percent"] == pytest.approx(66.67)
    assert stats["material_count"] == 1
    assert stats["material_value"] == pytest.approx(450.0)
    assert list_tasks(db_session, project_id=project.id, status="done").total == 2
    assert list_tasks(db_session, assigned_user_id=user.id).items[0].id == first.id


def test_task_validation(db_session, project):
    with pytest.raises(NotFoundError):
        create_task(db_session, {"project_id": 999, "title": "Nowhere"})
    with pytest.raises(RuleViolation, match="title"):
        create_task(db_session, {"project_id": project.id, "title": ""})
    with pytest.raises(RuleViolation, match="priority"):
        create_task(db_session, {"project_id": project.id, "title": "Roof", "priority": "someday"})


def test_payroll_rules(db_session, project):
    mason = create_labour(db_session, {"name": "Ravi Kumar", "skill": "Mason", "daily_wage": 900.0, "phone": " 98450 00000 "})
    assert mason.is_active is True
    assert mason.phone == "98450 00000"

    with pytest.raises(RuleViolation, match="period_end"):
        create_payroll(
            db_session,
            {
                "labour_id": mason.id,
                "project_id": project.id,
                "period_start": "2026-05-15",
                "period_end": "2026-05-01",
                "amount_paid": 1000.0,
            },
        )
    with pytest.raises(NotFoundError, match="Labour"):
        create_payroll(db_session, {"labour_id": 999, "project_id": project.id})
    with pytest.raises(NotFoundError, match="Project"):
        create_payroll(db_session, {"labour_id": mason.id, "project_id": 999})
    with pytest.raises(RuleViolation, match="amount_paid"):
        create_payroll(
            db_session,
            {"labour_id": mason.id, "project_id": project.id, "period_start": "2026-05-01", "period_end": "2026-05-15", "amount_paid": -1},
        )

    payroll = create_payroll(
        db_session,
        {"labour_id": mason.id, "project_id": project.id, "period_start": "2026-05-01", "period_end": "2026-05-15", "amount_paid": 12600.0},
    )
    assert payroll.deductions == 0.0
    update_payroll(db_session, payroll, {"deductions": 600.0, "paid_date": "2026-05-16"})
    assert payroll.deductions == pytest.approx(600.0)
    assert list_payroll(db_session, labour_id=mason.id).total == 1

    with pytest.raises(RuleViolation, match="payroll records"):
        delete_labour(db_session, mason)
    assert list_labours(db_session, active=True, search="ravi").total == 1
