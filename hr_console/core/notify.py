"""User-facing notifications.

The console shows every outcome of a form submit as a short toast: a
title, a description (for failures, the underlying error text) and a
severity. Handlers push them into a ``Notifier``; the web layer's notifier
keeps them in the session until the next page render pops them.
"""
from dataclasses import dataclass, asdict
from typing import Any, MutableMapping

SUCCESS = "success"
ERROR = "error"
INFO = "info"

FLASH_KEY = "_flash"


@dataclass(frozen=True)
class Notification:
    title: str
    description: str = ""
    severity: str = INFO


class Notifier:
    """Collects notifications in memory."""

    def __init__(self):
        self.items: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.items.append(notification)

    def success(self, title: str, description: str = "") -> None:
        self.notify(Notification(title, description, SUCCESS))

    def error(self, title: str, description: str = "") -> None:
        self.notify(Notification(title, description, ERROR))


class SessionNotifier(Notifier):
    """Stores notifications as flash messages in a session mapping."""

    def __init__(self, session: MutableMapping[str, Any]):
        super().__init__()
        self.session = session

    def notify(self, notification: Notification) -> None:
        super().notify(notification)
        pending = list(self.session.get(FLASH_KEY, []))
        pending.append(asdict(notification))
        self.session[FLASH_KEY] = pending


def pop_flashes(session: MutableMapping[str, Any]) -> list[Notification]:
    raw = session.pop(FLASH_KEY, None) or []
    return [Notification(**item) for item in raw]


def error_text(exc: BaseException) -> str:
    # DBAPI errors wrapped by SQLAlchemy carry the driver's own text on .orig
    orig = getattr(exc, "orig", None)
    return str(orig or exc) or exc.__class__.__name__
