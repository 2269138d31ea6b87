"""
Response editing collaboration

In-process registry of who is looking at / editing a planned response.
A collaboration expires `timeout` after it was opened; a collaborator who
has not been seen for `inactive_after` is dropped. Only one collaborator may
be editing at a time.

State lives in process memory, so it is only correct with a single API
instance.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional
from uuid import UUID

from drms.core.config import settings
from drms.core.exceptions import ConflictError

logger = logging.getLogger(__name__)


class CollaborationAction(str, Enum):
    JOIN = "join"
    LEAVE = "leave"
    START_EDITING = "start_editing"
    STOP_EDITING = "stop_editing"


@dataclass
class Collaborator:
    user_id: UUID
    user_name: str
    email: Optional[str]
    joined_at: datetime
    last_seen: datetime
    is_editing: bool = False


@dataclass
class Collaboration:
    response_id: UUID
    created_at: datetime
    collaborators: dict[UUID, Collaborator] = field(default_factory=dict)

    @property
    def editor(self) -> Optional[Collaborator]:
        for collaborator in self.collaborators.values():
            if collaborator.is_editing:
                return collaborator
        return None

    def has(self, user_id: UUID) -> bool:
        return user_id in self.collaborators


class CollaborationRegistry:
    """
    Usage:
    ```python
    registry = CollaborationRegistry()
    registry.apply(response_id, CollaborationAction.JOIN, user_id, "Ada")
    registry.apply(response_id, CollaborationAction.START_EDITING, user_id, "Ada")
    registry.can_edit(response_id, other_user_id)  # False
    ```
    """

    def __init__(
        self,
        timeout: Optional[timedelta] = None,
        inactive_after: Optional[timedelta] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self.timeout = timeout or timedelta(minutes=settings.collaboration_timeout_minutes)
        self.inactive_after = inactive_after or timedelta(minutes=settings.collaboration_inactive_minutes)
        self._clock = clock
        self._collaborations: dict[UUID, Collaboration] = {}

    def get(self, response_id: UUID) -> Optional[Collaboration]:
        self.cleanup()
        return self._collaborations.get(response_id)

    def apply(
        self,
        response_id: UUID,
        action: CollaborationAction,
        user_id: UUID,
        user_name: str,
        email: Optional[str] = None,
    ) -> Optional[Collaboration]:
        """
        Apply a collaboration action for `user_id`

        start_editing joins the caller first when needed.

        Returns:
            The collaboration, or None when the last collaborator left

        Raises:
            ConflictError: RS4096 someone else is already editing
        """
        self.cleanup()
        now = self._clock()
        collaboration = self._collaborations.get(response_id)
        if collaboration is None:
            if action in (CollaborationAction.LEAVE, CollaborationAction.STOP_EDITING):
                return None
            collaboration = Collaboration(response_id=response_id, created_at=now)
            self._collaborations[response_id] = collaboration

        collaborator = collaboration.collaborators.get(user_id)

        if action == CollaborationAction.JOIN:
            if collaborator is None:
                collaboration.collaborators[user_id] = Collaborator(
                    user_id=user_id,
                    user_name=user_name,
                    email=email,
                    joined_at=now,
                    last_seen=now,
                )
            else:
                collaborator.last_seen = now

        elif action == CollaborationAction.LEAVE:
            collaboration.collaborators.pop(user_id, None)

        elif action == CollaborationAction.START_EDITING:
            editor = collaboration.editor
            if editor is not None and editor.user_id != user_id:
                logger.warning(f"Response {response_id}: {user_id} refused, {editor.user_name} is editing")
                raise ConflictError(
                    "RS4096",
                    f"{editor.user_name} is currently editing this response",
                    details={"editor_id": str(editor.user_id)},
                )
            if collaborator is None:
                collaborator = Collaborator(
                    user_id=user_id,
                    user_name=user_name,
                    email=email,
                    joined_at=now,
                    last_seen=now,
                )
                collaboration.collaborators[user_id] = collaborator
            collaborator.is_editing = True
            collaborator.last_seen = now

        elif action == CollaborationAction.STOP_EDITING:
            if collaborator is not None:
                collaborator.is_editing = False
                collaborator.last_seen = now

        if not collaboration.collaborators:
            del self._collaborations[response_id]
            return None
        return collaboration

    def editor_of(self, response_id: UUID) -> Optional[UUID]:
        collaboration = self.get(response_id)
        if collaboration is None or collaboration.editor is None:
            return None
        return collaboration.editor.user_id

    def can_edit(self, response_id: UUID, user_id: UUID) -> bool:
        """No one else holds the edit lock"""
        editor_id = self.editor_of(response_id)
        return editor_id is None or editor_id == user_id

    def cleanup(self) -> None:
        now = self._clock()
        for response_id in list(self._collaborations):
            collaboration = self._collaborations[response_id]
            if now - collaboration.created_at > self.timeout:
                del self._collaborations[response_id]
                continue
            collaboration.collaborators = {
                uid: c for uid, c in collaboration.collaborators.items()
                if now - c.last_seen < self.inactive_after
            }
            if not collaboration.collaborators:
                del self._collaborations[response_id]

    def close(self, response_id: UUID) -> None:
        """Drop the collaboration once the response leaves PLANNED"""
        self._collaborations.pop(response_id, None)

    def clear(self) -> None:
        self._collaborations.clear()


_registry: Optional[CollaborationRegistry] = None


def get_collaboration_registry() -> CollaborationRegistry:
    """Process wide registry"""
    global _registry
    if _registry is None:
        _registry = CollaborationRegistry()
    return _registry
