"""Tests for labour attendance, bulk entry and earnings statistics."""

import pytest

from buildtrack.core.errors import NotFoundError, RuleViolation
from buildtrack.crud.labour import (
    create_labour,
    delete_attendance,
    delete_labour,
    labour_stats,
    list_attendance,
    record_attendance,
    record_bulk_attendance,
    update_attendance,
)
from buildtrack.models.project import Project


@pytest.fixture()
def mason(db_session):
    return create_labour(db_session, {"name": "Ravi Kumar", "skill": "Mason", "daily_wage": 800.0})


@pytest.fixture()
def second_project(db_session):
    project = Project(name="Lakeview Villas", status="ACTIVE")
    db_session.add(project)
    db_session.commit()
    return project


def _day(db_session, user, labour, project, day, hours, overtime=0.0):
    return record_attendance(
        db_session,
        labour,
        {"project_id": project.id, "date": day, "hours_worked": hours, "overtime_hours": overtime},
        user_id=user.id,
    )


def test_attendance_is_one_row_per_labour_project_and_day(db_session, user, project, mason):
    attendance = _day(db_session, user, mason, project, "2026-03-02", 8, 2)

    assert attendance.recorded_by_user_id == user.id
    assert attendance.project_name == "Riverside Towers"
    with pytest.raises(RuleViolation, match="already recorded"):
        _day(db_session, user, mason, project, "2026-03-02", 4)
    with pytest.raises(RuleViolation, match="between 0 and 24"):
        _day(db_session, user, mason, project, "2026-03-03", 25)
    with pytest.raises(NotFoundError, match="Project not found"):
        record_attendance(db_session, mason, {"project_id": 999, "date": "2026-03-03"}, user_id=user.id)
    with pytest.raises(RuleViolation, match="date is required"):
        record_attendance(db_session, mason, {"project_id": project.id}, user_id=user.id)


def test_attendance_filters_and_edits(db_session, user, project, mason):
    first = _day(db_session, user, mason, project, "2026-03-02", 8)
    _day(db_session, user, mason, project, "2026-03-05", 6)

    window = list_attendance(db_session, labour_id=mason.id, start_date="2026-03-03", end_date="2026-03-31")
    assert [row.date for row in window] == ["2026-03-05"]

    update_attendance(db_session, first, {"overtime_hours": 1.5, "notes": "Stayed for curing"})
    assert first.overtime_hours == pytest.approx(1.5)
    assert first.notes == "Stayed for curing"
    with pytest.raises(RuleViolation, match="between 0 and 24"):
        update_attendance(db_session, first, {"hours_worked": -1})

    with pytest.raises(RuleViolation, match="attendance records"):
        delete_labour(db_session, mason)
    for row in list_attendance(db_session, labour_id=mason.id):
        delete_attendance(db_session, row)
    delete_labour(db_session, mason)


def test_bulk_attendance_keeps_good_lines(db_session, user, project, mason):
    helper = create_labour(db_session, {"name": "Suresh", "skill": "Helper", "daily_wage": 560.0})
    _day(db_session, user, mason, project, "2026-03-02", 8)

    created, skipped = record_bulk_attendance(
        db_session,
        {
            "project_id": project.id,
            "date": "2026-03-02",
            "attendance_records": [
                {"labour_id": mason.id, "hours_worked": 8},
                {"labour_id": helper.id, "hours_worked": 7, "work_type": "Shuttering"},
                {"labour_id": helper.id, "hours_worked": 7},
                {"labour_id": 999, "hours_worked": 8},
            ],
        },
        user_id=user.id,
    )

    assert [row.labour_id for row in created] == [helper.id]
    assert created[0].work_type == "Shuttering"
    assert skipped == [
        {"labour_id": mason.id, "error": "Attendance already recorded for this date"},
        {"labour_id": helper.id, "error": "Labour listed more than once"},
        {"labour_id": 999, "error": "Labour not found"},
    ]
    assert len(list_attendance(db_session, project_id=project.id)) == 2


def test_stats_pay_hours_at_the_daily_rate(db_session, user, project, second_project, mason):
    _day(db_session, user, mason, project, "2026-03-02", 8, 2)
    _day(db_session, user, mason, project, "2026-03-03", 6)
    _day(db_session, user, mason, second_project, "2026-03-02", 4)

    stats = labour_stats(db_session, mason)["statistics"]

    assert stats["total_hours"] == pytest.approx(20.0)
    assert stats["total_days"] == 3
    assert stats["average_hours_per_day"] == pytest.approx(6.67)
    assert stats["total_earnings"] == pytest.approx(2000.0)
    by_project = {row["project_id"]: row for row in stats["project_breakdown"]}
    assert by_project[project.id]["total_hours"] == pytest.approx(16.0)
    assert by_project[project.id]["total_earnings"] == pytest.approx(1600.0)
    assert by_project[second_project.id]["project_name"] == "Lakeview Villas"

    scoped = labour_stats(db_session, mason, project_id=second_project.id)
    assert scoped["statistics"]["total_days"] == 1
    assert labour_stats(db_session, mason, start_date="2026-04-01")["statistics"]["average_hours_per_day"] == 0.0


def test_attendance_over_http(client, login, project, mason):
    site = login("site@example.com", "Project On-site Team")

    recorded = client.post(
        f"/api/v1/labours/{mason.id}/attendance",
        json={"project_id": project.id, "date": "2026-03-02", "hours_worked": 8, "overtime_hours": 1},
        headers=site,
    )
    assert recorded.status_code == 201, recorded.text
    assert recorded.json()["message"] == "Attendance recorded successfully"
    attendance = recorded.json()["attendance"]
    assert attendance["project_name"] == "Riverside Towers"

    duplicate = client.post(
        f"/api/v1/labours/{mason.id}/attendance",
        json={"project_id": project.id, "date": "2026-03-02", "hours_worked": 4},
        headers=site,
    )
    assert duplicate.status_code == 400
    assert duplicate.json() == {"message": "Attendance already recorded for this date"}

    bulk = client.post(
        "/api/v1/labours/bulk-attendance",
        json={
            "project_id": project.id,
            "date": "2026-03-03",
            "attendance_records": [{"labour_id": mason.id, "hours_worked": 7}, {"labour_id": 999}],
        },
        headers=site,
    )
    assert bulk.status_code == 201, bulk.text
    assert bulk.json()["message"] == "Bulk attendance recorded. 1 records created, 1 errors."
    assert bulk.json()["errors"] == [{"labour_id": 999, "error": "Labour not found"}]

    edited = client.patch(f"/api/v1/labours/attendance/{attendance['id']}", json={"hours_worked": 9}, headers=site)
    assert edited.status_code == 200, edited.text
    assert edited.json()["message"] == "Attendance updated successfully"
    assert edited.json()["attendance"]["hours_worked"] == 9

    stats = client.get(f"/api/v1/labours/{mason.id}/stats", headers=site)
    assert stats.status_code == 200
    assert stats.json()["statistics"]["total_hours"] == pytest.approx(17.0)
    assert stats.json()["statistics"]["total_earnings"] == pytest.approx(1700.0)

    listed = client.get(f"/api/v1/labours/{mason.id}/attendance", params={"end_date": "2026-03-02"}, headers=site)
    assert [row["date"] for row in listed.json()["attendance"]] == ["2026-03-02"]

    removed = client.delete(f"/api/v1/labours/attendance/{attendance['id']}", headers=site)
    assert removed.status_code == 200
    assert removed.json() == {"message": "Attendance record deleted successfully"}
