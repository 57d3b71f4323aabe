"""
Login, registration and logout for the header controls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from client.api import ApiClient, ApiError
from client.session import Session
from client.ui import Notifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeaderState:
    """What the header shows: the user badge and Logout, or the Login button."""

    logged_in: bool
    username: Optional[str] = None

    @property
    def show_login(self) -> bool:
        return not self.logged_in


class AuthController:
    def __init__(self, api: ApiClient, session: Session, notifier: Notifier):
        self.api = api
        self.session = session
        self.notifier = notifier

    def _remember(self, result: dict) -> None:
        if result.get("token"):
            self.session.token = result["token"]
            self.session.username = result.get("username")

    def register(self, username: str, password: str) -> bool:
        try:
            result = self.api.register(username, password)
        except ApiError as exc:
            logger.warning("Register failed: %s", exc)
            self.notifier.alert("Register failed")
            return False
        self._remember(result)
        return True

    def login(self, username: str, password: str) -> bool:
        try:
            result = self.api.login(username, password)
        except ApiError as exc:
            logger.warning("Login failed: %s", exc)
            self.notifier.alert("Login failed")
            return False
        self._remember(result)
        return True

    def logout(self) -> None:
        # Tokens are stateless; forgetting them locally is the whole logout.
        self.session.token = None
        self.session.username = None

    def header_state(self) -> HeaderState:
        if self.session.logged_in:
            return HeaderState(logged_in=True, username=self.session.username)
        return HeaderState(logged_in=False)
