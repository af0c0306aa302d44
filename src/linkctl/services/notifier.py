"""Notifications — user-facing outcome messages of mutations.

Services receive a :class:`Notifier` at construction time (an injected
observer, never a module-level singleton). :class:`NotificationLog` is the
default implementation: it keeps every notification in order so a surface
can render them once the operation finished.
"""

from __future__ import annotations

from typing import Literal, Protocol

from pydantic import BaseModel

Tone = Literal["positive", "negative"]


class Notification(BaseModel):
    """One toast-style message."""

    model_config = {"frozen": True}

    tone: Tone
    title: str
    message: str | None = None


class Notifier(Protocol):
    def notify(self, notification: Notification) -> None: ...


class NotificationLog:
    """Collects notifications in arrival order."""

    def __init__(self) -> None:
        self._items: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self._items.append(notification)

    @property
    def items(self) -> list[Notification]:
        return list(self._items)

    @property
    def last(self) -> Notification | None:
        return self._items[-1] if self._items else None

    def drain(self) -> list[Notification]:
        """Return and forget everything collected so far."""
        items, self._items = self._items, []
        return items

    def __len__(self) -> int:
        return len(self._items)


def positive(title: str, message: str | None = None) -> Notification:
    return Notification(tone="positive", title=title, message=message)


def negative(title: str, message: str | None = None) -> Notification:
    return Notification(tone="negative", title=title, message=message)
