"""
Wires the client controllers together for one page.
"""

from __future__ import annotations

from typing import Optional

from client.api import ApiClient
from client.auth import AuthController
from client.compose import ComposeController, RichTextEditor
from client.config import ClientSettings, get_client_settings
from client.lists import ListBoard
from client.session import FileStore, Session
from client.ui import LoggingNotifier, Notifier


class Site:
    """
    The compose controller is the UI controller injected into every list, and
    saving from it refreshes the list of the saved kind.
    """

    def __init__(
        self,
        api: ApiClient,
        *,
        notifier: Optional[Notifier] = None,
        settings: Optional[ClientSettings] = None,
    ):
        settings = settings or get_client_settings()
        self.api = api
        self.session = api.session
        self.notifier = notifier or LoggingNotifier()
        self.compose = ComposeController(
            api, RichTextEditor(), self.notifier, on_saved=self._refresh_kind
        )
        self.board = ListBoard(
            api,
            session=self.session,
            ui=self.compose,
            notifier=self.notifier,
            limit=settings.page_limit,
            search_delay=settings.search_delay,
            preview_chars=settings.preview_chars,
        )
        self.auth = AuthController(api, self.session, self.notifier)

    @classmethod
    def from_settings(cls, settings: Optional[ClientSettings] = None) -> "Site":
        settings = settings or get_client_settings()
        session = Session(FileStore(settings.session_file))
        return cls(ApiClient(session, base_url=settings.base_url), settings=settings)

    def _refresh_kind(self, kind: str) -> None:
        self.board.refresh_kind(kind)

    def start(self) -> None:
        self.board.load_all()
