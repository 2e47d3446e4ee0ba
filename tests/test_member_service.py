"""Direct project membership management.

Invariants:
    - Only the project's founder adds, re-roles or removes members
    - A (user, project) pair is a member at most once
    - Members may list the membership, outsiders may not
"""

import pytest
from sqlalchemy import func, select

from taskflow.core.errors import ConflictError, InvalidStateError, NotFoundError, UnauthorizedError
from taskflow.models import ProjectMember, User
from taskflow.services.member_service import ProjectMemberService


async def test_add_member_uses_default_role(db, founder, employee, project):
    member = await ProjectMemberService(db).add_member(project.id, employee.id, founder)

    assert member.user_id == employee.id
    assert member.user_name == "Emma Employee"
    assert member.project_name == "Apollo"
    assert member.role_in_project == "MEMBER"
    assert member.joined_at is not None


async def test_add_existing_member_conflicts(db, founder, employee, project):
    service = ProjectMemberService(db)
    await service.add_member(project.id, employee.id, founder, "LEAD")

    with pytest.raises(ConflictError):
        await service.add_member(project.id, employee.id, founder)

    count = await db.scalar(
        select(func.count()).select_from(ProjectMember).where(ProjectMember.project_id == project.id)
    )
    assert count == 1


async def test_primary_key_backs_up_duplicate_check(
    db, session_factory, founder, employee, project, monkeypatch
):
    await ProjectMemberService(db).add_member(project.id, employee.id, founder)
    founder_id, employee_id, project_id = founder.id, employee.id, project.id

    async with session_factory() as session:
        service = ProjectMemberService(session)
        actor = await session.get(User, founder_id)
        original_get = session.get

        async def get_without_membership(entity, ident, **kwargs):
            if entity is ProjectMember:
                return None
            return await original_get(entity, ident, **kwargs)

        # The membership check misses the row the other session committed
        monkeypatch.setattr(session, "get", get_without_membership)

        with pytest.raises(ConflictError):
            await service.add_member(project_id, employee_id, actor)


async def test_only_founder_manages_members(db, founder, employee, outsider, project):
    service = ProjectMemberService(db)
    await service.add_member(project.id, employee.id, founder)

    with pytest.raises(UnauthorizedError):
        await service.add_member(project.id, outsider.id, employee)
    with pytest.raises(UnauthorizedError):
        await service.update_role(project.id, employee.id, "LEAD", employee)
    with pytest.raises(UnauthorizedError):
        await service.remove_member(project.id, employee.id, employee)


async def test_add_unknown_user_or_founder(db, founder, project):
    service = ProjectMemberService(db)

    with pytest.raises(NotFoundError):
        await service.add_member(project.id, 4242, founder)
    with pytest.raises(InvalidStateError):
        await service.add_member(project.id, founder.id, founder)


async def test_update_role_and_remove(db, founder, employee, project):
    service = ProjectMemberService(db)
    await service.add_member(project.id, employee.id, founder)

    updated = await service.update_role(project.id, employee.id, "LEAD", founder)
    assert updated.role_in_project == "LEAD"

    await service.remove_member(project.id, employee.id, founder)
    assert await service.list_members(project.id, founder) == []

    with pytest.raises(NotFoundError):
        await service.remove_member(project.id, employee.id, founder)
    with pytest.raises(NotFoundError):
        await service.update_role(project.id, employee.id, "LEAD", founder)


async def test_list_members_visibility(db, founder, employee, outsider, project):
    service = ProjectMemberService(db)
    await service.add_member(project.id, employee.id, founder)

    listed = await service.list_members(project.id, employee)
    assert [m.user_email for m in listed] == ["emma@example.com"]

    with pytest.raises(UnauthorizedError):
        await service.list_members(project.id, outsider)
