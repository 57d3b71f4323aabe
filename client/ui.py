"""
Interfaces the list renderers use to reach the rest of the page.
"""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class UiController(Protocol):
    """Opens an entry in the shared compose surface."""

    def open_view(self, entry: dict) -> None:
        ...

    def open_edit_modal(self, entry: dict) -> None:
        ...


class Notifier(Protocol):
    """Non-blocking alerts and yes/no confirmations."""

    def alert(self, message: str) -> None:
        ...

    def confirm(self, message: str) -> bool:
        ...


class LoggingNotifier:
    """
    Headless notifier: alerts are logged and kept, confirmations answer with
    a fixed reply.
    """

    def __init__(self, confirm_reply: bool = True):
        self.confirm_reply = confirm_reply
        self.alerts: list[str] = []
        self.confirmations: list[str] = []

    def alert(self, message: str) -> None:
        logger.warning("Alert: %s", message)
        self.alerts.append(message)

    def confirm(self, message: str) -> bool:
        self.confirmations.append(message)
        return self.confirm_reply
