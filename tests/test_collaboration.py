"""Unit tests for the in-process response collaboration registry."""
from __future__ import annotations

from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from drms.core.exceptions import ConflictError
from drms.domains.responses.collaboration import CollaborationAction, CollaborationRegistry

A = CollaborationAction


class _FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 6, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def _build_registry() -> tuple[CollaborationRegistry, _FakeClock]:
    clock = _FakeClock()
    registry = CollaborationRegistry(
        timeout=timedelta(minutes=30),
        inactive_after=timedelta(minutes=5),
        clock=clock,
    )
    return registry, clock


def test_join_and_leave() -> None:
    registry, _ = _build_registry()
    response_id, ada, bola = uuid4(), uuid4(), uuid4()

    registry.apply(response_id, A.JOIN, ada, "Ada")
    collaboration = registry.apply(response_id, A.JOIN, bola, "Bola")

    assert set(collaboration.collaborators) == {ada, bola}

    registry.apply(response_id, A.LEAVE, ada, "Ada")
    assert registry.get(response_id).has(ada) is False

    assert registry.apply(response_id, A.LEAVE, bola, "Bola") is None
    assert registry.get(response_id) is None


def test_single_editor() -> None:
    registry, _ = _build_registry()
    response_id, ada, bola = uuid4(), uuid4(), uuid4()

    registry.apply(response_id, A.JOIN, bola, "Bola")
    registry.apply(response_id, A.START_EDITING, ada, "Ada")

    assert registry.editor_of(response_id) == ada
    assert registry.can_edit(response_id, ada) is True
    assert registry.can_edit(response_id, bola) is False

    with pytest.raises(ConflictError) as exc_info:
        registry.apply(response_id, A.START_EDITING, bola, "Bola")
    assert exc_info.value.error_code == "RS4096"

    registry.apply(response_id, A.STOP_EDITING, ada, "Ada")
    registry.apply(response_id, A.START_EDITING, bola, "Bola")
    assert registry.editor_of(response_id) == bola


def test_start_editing_joins_the_caller() -> None:
    registry, _ = _build_registry()
    response_id, ada = uuid4(), uuid4()

    collaboration = registry.apply(response_id, A.START_EDITING, ada, "Ada", "ada@example.org")

    assert collaboration.has(ada)
    assert collaboration.collaborators[ada].email == "ada@example.org"
    assert collaboration.editor.user_id == ada


def test_stop_editing_without_collaboration_is_noop() -> None:
    registry, _ = _build_registry()

    assert registry.apply(uuid4(), A.STOP_EDITING, uuid4(), "Ada") is None


def test_inactive_collaborator_releases_lock() -> None:
    registry, clock = _build_registry()
    response_id, ada, bola = uuid4(), uuid4(), uuid4()

    registry.apply(response_id, A.START_EDITING, ada, "Ada")
    clock.advance(minutes=3)
    registry.apply(response_id, A.JOIN, bola, "Bola")
    clock.advance(minutes=3)

    # Ada last seen 6 minutes ago, Bola 3 minutes ago
    assert registry.can_edit(response_id, bola) is True
    assert registry.get(response_id).has(ada) is False


def test_collaboration_expires_after_timeout() -> None:
    registry, clock = _build_registry()
    response_id, ada = uuid4(), uuid4()

    registry.apply(response_id, A.START_EDITING, ada, "Ada")
    for _ in range(7):
        clock.advance(minutes=4)
        registry.apply(response_id, A.JOIN, ada, "Ada")

    assert registry.editor_of(response_id) == ada

    clock.advance(minutes=3)
    assert registry.get(response_id) is None


def test_close_drops_collaboration() -> None:
    registry, _ = _build_registry()
    response_id, ada = uuid4(), uuid4()

    registry.apply(response_id, A.START_EDITING, ada, "Ada")
    registry.close(response_id)

    assert registry.get(response_id) is None
    assert registry.can_edit(response_id, uuid4()) is True
