"""Status vocabulary: external spellings map onto one canonical task status."""

import pytest

from taskflow.models.enums import InvitationStatus, ProjectStatus, RoleType, TaskStatus


@pytest.mark.parametrize("raw, expected", [
    ("DONE", TaskStatus.DONE),
    ("done", TaskStatus.DONE),
    ("COMPLETED", TaskStatus.DONE),
    ("completed", TaskStatus.DONE),
    ("TODO", TaskStatus.TODO),
    ("to-do", TaskStatus.TODO),
    ("PLANNED", TaskStatus.TODO),
    ("in progress", TaskStatus.IN_PROGRESS),
    ("in-progress", TaskStatus.IN_PROGRESS),
    ("InProgress", TaskStatus.IN_PROGRESS),
    (" blocked ", TaskStatus.BLOCKED),
])
def test_task_status_aliases(raw, expected):
    assert TaskStatus.from_external(raw) is expected


@pytest.mark.parametrize("raw", [None, "", "REVIEW", "half done"])
def test_unrecognised_task_status(raw):
    assert TaskStatus.from_external(raw) is None


def test_only_done_counts_as_completion():
    assert [s for s in TaskStatus if s.is_done] == [TaskStatus.DONE]
    assert [s for s in TaskStatus if s.is_blocked] == [TaskStatus.BLOCKED]


def test_invitation_terminal_states():
    assert not InvitationStatus.PENDING.is_terminal
    assert InvitationStatus.ACCEPTED.is_terminal
    assert InvitationStatus.REJECTED.is_terminal


def test_project_status_parsing():
    assert ProjectStatus.from_external("active") is ProjectStatus.ACTIVE
    assert ProjectStatus.from_external("archived") is None


def test_lowest_role():
    assert RoleType.lowest() is RoleType.EMPLOYEE
