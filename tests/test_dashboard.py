"""Dashboard aggregation: pure function over a task/sprint snapshot.

Invariants:
    - Empty task set: progress 0, empty distribution, no blocked/overdue
    - DONE is the completion token; legacy COMPLETED is read as DONE
    - Active sprint: current sprint first, earliest upcoming sprint as fallback
"""

from datetime import date, timedelta

import pytest

from taskflow.models import Project, Sprint, Task
from taskflow.models.enums import SprintStatus
from taskflow.services.dashboard_service import compute_dashboard, select_active_sprint

TODAY = date(2026, 5, 15)


@pytest.fixture
def project():
    return Project(id=1, name="Apollo", status="ACTIVE", start_date=TODAY - timedelta(days=90), founder_id=1)


def sprint(sprint_id, name, start_offset, end_offset):
    return Sprint(
        id=sprint_id,
        name=name,
        goal=f"Goal of {name}",
        start_date=TODAY + timedelta(days=start_offset),
        end_date=TODAY + timedelta(days=end_offset),
        project_id=1,
    )


def task(task_id, status, sprint_id=None):
    return Task(id=task_id, title=f"Task {task_id}", status=status, priority="MEDIUM",
                project_id=1, sprint_id=sprint_id, reporter_id=1)


def test_empty_project(project):
    snapshot = compute_dashboard(project, [], [], TODAY)

    assert snapshot.overall_progress == 0
    assert snapshot.task_distribution == {}
    assert snapshot.blocked_tasks_count == 0
    assert snapshot.overdue_tasks_count == 0
    assert snapshot.active_sprint is None
    assert snapshot.all_sprints == []


def test_progress_distribution_and_blocked(project):
    tasks = [
        task(1, "DONE"),
        task(2, "completed"),
        task(3, "IN_PROGRESS"),
        task(4, "blocked"),
    ]

    snapshot = compute_dashboard(project, tasks, [], TODAY)

    assert snapshot.overall_progress == pytest.approx(50.0)
    assert snapshot.task_distribution == {"DONE": 2, "IN_PROGRESS": 1, "BLOCKED": 1}
    assert snapshot.blocked_tasks_count == 1
    assert snapshot.total_tasks == 4


def test_unknown_status_is_counted_under_its_own_name(project):
    snapshot = compute_dashboard(project, [task(1, "REVIEW"), task(2, "TODO")], [], TODAY)

    assert snapshot.task_distribution == {"REVIEW": 1, "TODO": 1}
    assert snapshot.overall_progress == 0


def test_overdue_counts_unfinished_tasks_of_ended_sprints(project):
    past = sprint(1, "Past", -20, -6)
    current = sprint(2, "Current", -5, 5)
    tasks = [
        task(1, "TODO", sprint_id=1),
        task(2, "DONE", sprint_id=1),
        task(3, "TODO", sprint_id=2),
        task(4, "TODO"),
    ]

    snapshot = compute_dashboard(project, tasks, [past, current], TODAY)

    assert snapshot.overdue_tasks_count == 1


def test_current_sprint_is_preferred_over_upcoming(project):
    a = sprint(1, "A", -5, 5)
    b = sprint(2, "B", 10, 20)

    snapshot = compute_dashboard(project, [], [b, a], TODAY)

    assert snapshot.active_sprint.name == "A"
    assert snapshot.active_sprint.status == SprintStatus.ACTIVE


def test_upcoming_sprint_is_the_fallback(project):
    b = sprint(2, "B", 10, 20)
    c = sprint(3, "C", 25, 35)

    snapshot = compute_dashboard(project, [], [c, b], TODAY)

    assert snapshot.active_sprint.name == "B"
    assert snapshot.active_sprint.status == SprintStatus.PLANNED


def test_no_active_sprint_when_all_completed(project):
    assert select_active_sprint([sprint(1, "Old", -30, -16), sprint(2, "Older", -60, -46)], TODAY) is None


def test_earliest_current_sprint_wins():
    late = sprint(1, "Late", -2, 3)
    early = sprint(2, "Early", -4, 1)
    assert select_active_sprint([late, early], TODAY).name == "Early"


def test_sprint_ending_today_is_still_current():
    assert select_active_sprint([sprint(1, "Ends today", -13, 0)], TODAY).name == "Ends today"


def test_active_sprint_progress_and_tasks(project):
    a = sprint(1, "A", -5, 5)
    tasks = [
        task(1, "DONE", sprint_id=1),
        task(2, "TODO", sprint_id=1),
        task(3, "DONE", sprint_id=1),
        task(4, "DONE"),
    ]

    snapshot = compute_dashboard(project, tasks, [a], TODAY)

    active = snapshot.active_sprint
    assert active.task_count == 3
    assert active.progress == pytest.approx(200 / 3)
    assert [t.id for t in active.tasks] == [1, 2, 3]


def test_all_sprints_are_summarized_in_storage_order(project):
    sprints = [sprint(3, "C", 25, 35), sprint(1, "A", -30, -16), sprint(2, "B", -5, 5)]

    snapshot = compute_dashboard(project, [], sprints, TODAY)

    assert [s.name for s in snapshot.all_sprints] == ["C", "A", "B"]
    assert [s.status for s in snapshot.all_sprints] == [
        SprintStatus.PLANNED, SprintStatus.COMPLETED, SprintStatus.ACTIVE,
    ]
    assert snapshot.all_sprints[0].goal == "Goal of C"
