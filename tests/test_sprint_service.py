"""Sprint service against a real async session.

Invariants:
    - Writes are validated before commit; rejected writes leave storage unchanged
    - Only the project's founder manages sprints; members may read them
    - Deleting a sprint moves its tasks back to the backlog
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from taskflow.core.errors import NotFoundError, SprintValidationError, UnauthorizedError
from taskflow.models import ProjectMember, Sprint, Task
from taskflow.models.enums import SprintStatus
from taskflow.services.sprint_service import SprintService


async def test_create_sprint(db, founder, project, today):
    service = SprintService(db)

    dto = await service.create_sprint(
        project.id, "Sprint 1", today - timedelta(days=2), today + timedelta(days=11),
        founder, goal="Ship login", today=today,
    )

    assert dto.id is not None
    assert dto.status == SprintStatus.ACTIVE
    assert dto.project_name == "Apollo"
    assert dto.task_count == 0
    assert dto.progress == 0


async def test_overlapping_sprint_is_not_persisted(db, founder, project, today):
    service = SprintService(db)
    await service.create_sprint(project.id, "Sprint 1", today, today + timedelta(days=13), founder)

    with pytest.raises(SprintValidationError) as exc:
        await service.create_sprint(
            project.id, "Sprint 2", today + timedelta(days=10), today + timedelta(days=20), founder
        )

    assert exc.value.rule == SprintValidationError.OVERLAP
    assert exc.value.conflicting_sprint == "Sprint 1"
    count = await db.scalar(select(func.count(Sprint.id)).where(Sprint.project_id == project.id))
    assert count == 1


async def test_sprint_before_project_start_is_rejected(db, founder, project):
    early = project.start_date - timedelta(days=1)

    with pytest.raises(SprintValidationError) as exc:
        await SprintService(db).create_sprint(project.id, "Early", early, early + timedelta(days=7), founder)

    assert exc.value.rule == SprintValidationError.BEFORE_PROJECT_START


async def test_employee_cannot_create_sprint(db, employee, project, today):
    db.add(ProjectMember(user_id=employee.id, project_id=project.id))
    await db.commit()

    with pytest.raises(UnauthorizedError):
        await SprintService(db).create_sprint(project.id, "Sprint", today, today + timedelta(days=7), employee)


async def test_missing_project(db, founder, today):
    with pytest.raises(NotFoundError):
        await SprintService(db).create_sprint(999, "Sprint", today, today, founder)


async def test_update_sprint_may_keep_its_own_range(db, founder, project, today):
    service = SprintService(db)
    created = await service.create_sprint(project.id, "Sprint 1", today, today + timedelta(days=13), founder)

    dto = await service.update_sprint(
        created.id, founder, name="Sprint 1b", end_date=today + timedelta(days=14), today=today
    )

    assert dto.name == "Sprint 1b"
    assert dto.end_date == today + timedelta(days=14)


async def test_rejected_update_leaves_sprint_unchanged(db, founder, project, today):
    service = SprintService(db)
    first = await service.create_sprint(project.id, "Sprint 1", today, today + timedelta(days=13), founder)
    second = await service.create_sprint(
        project.id, "Sprint 2", today + timedelta(days=14), today + timedelta(days=27), founder
    )

    with pytest.raises(SprintValidationError) as exc:
        await service.update_sprint(second.id, founder, start_date=today + timedelta(days=5))

    assert exc.value.conflicting_sprint == "Sprint 1"
    row = (await db.execute(
        select(Sprint.start_date, Sprint.end_date).where(Sprint.id == second.id)
    )).one()
    assert row.start_date == today + timedelta(days=14)
    assert first.id != second.id


async def test_delete_sprint_moves_tasks_to_backlog(db, founder, project, today):
    service = SprintService(db)
    created = await service.create_sprint(project.id, "Sprint 1", today, today + timedelta(days=13), founder)
    sprint = await service.get_sprint(created.id)
    task = Task(title="Write docs", status="TODO", priority="LOW", project=project, sprint=sprint, reporter=founder)
    db.add(task)
    await db.commit()
    task_id = task.id

    await service.delete_sprint(created.id, founder)

    assert await db.scalar(select(Task.sprint_id).where(Task.id == task_id)) is None
    with pytest.raises(NotFoundError):
        await service.get_sprint(created.id)


async def test_member_lists_sprints_with_progress(db, founder, employee, project, today):
    service = SprintService(db)
    created = await service.create_sprint(project.id, "Sprint 1", today, today + timedelta(days=13), founder)
    sprint = await service.get_sprint(created.id)
    db.add_all([
        Task(title="A", status="DONE", priority="LOW", project=project, sprint=sprint, reporter=founder),
        Task(title="B", status="TODO", priority="LOW", project=project, sprint=sprint, reporter=founder),
        Task(title="C", status="DONE", priority="LOW", project=project, reporter=founder),
        ProjectMember(user_id=employee.id, project_id=project.id),
    ])
    await db.commit()

    sprints = await service.list_project_sprints(project.id, employee, today=today)

    assert len(sprints) == 1
    assert sprints[0].task_count == 2
    assert sprints[0].progress == pytest.approx(50.0)

    details = await service.get_sprint_details(created.id, employee, today=today)
    assert sorted(t.title for t in details.tasks) == ["A", "B"]


async def test_outsider_cannot_view_sprints(db, outsider, project):
    with pytest.raises(UnauthorizedError):
        await SprintService(db).list_project_sprints(project.id, outsider)
