"""
Paginated entry lists, one per kind, with a "View more / View less" toggle
and a debounced search that resets every list.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol

from client.api import ApiClient, ApiError
from client.cards import PREVIEW_MAX_CHARS, Card, build_card
from client.session import Session
from client.ui import Notifier, UiController
from shared.types import ENTRY_KINDS

logger = logging.getLogger(__name__)

LOADING = "Loading..."
EMPTY = "No entries yet."
FAILED = "Failed to load."
VIEW_MORE = "View more"
VIEW_LESS = "View less"
DEFAULT_SEARCH_DELAY = 0.3


class ListView(Protocol):
    def show_message(self, text: str) -> None:
        ...

    def clear(self) -> None:
        ...

    def append_card(self, card: Card) -> None:
        ...

    def remove_card(self, entry_id: str) -> None:
        ...

    def set_toggle(self, label: Optional[str]) -> None:
        """Show the toggle with ``label``, or hide it when ``label`` is None."""
        ...


class ListPanel:
    """In-memory list view."""

    def __init__(self):
        self.cards: list[Card] = []
        self.message: Optional[str] = None
        self.toggle_label: Optional[str] = None

    def show_message(self, text: str) -> None:
        self.cards = []
        self.message = text

    def clear(self) -> None:
        self.cards = []
        self.message = None

    def append_card(self, card: Card) -> None:
        self.message = None
        self.cards.append(card)

    def remove_card(self, entry_id: str) -> None:
        self.cards = [card for card in self.cards if card.entry_id != entry_id]

    def set_toggle(self, label: Optional[str]) -> None:
        self.toggle_label = label

    def card(self, entry_id: str) -> Card:
        for card in self.cards:
            if card.entry_id == entry_id:
                return card
        raise KeyError(entry_id)


class ListController:
    """
    One list of a single kind. Collapsed shows page 0; expanded appends page 1
    below it.
    """

    def __init__(
        self,
        kind: str,
        api: ApiClient,
        view: ListView,
        *,
        session: Session,
        ui: UiController,
        notifier: Notifier,
        limit: int = 3,
        preview_chars: int = PREVIEW_MAX_CHARS,
        lock: Optional[threading.RLock] = None,
    ):
        self.kind = kind
        self.api = api
        self.view = view
        self.session = session
        self.ui = ui
        self.notifier = notifier
        self.limit = limit
        self.preview_chars = preview_chars
        # Searches arrive on the debounce timer thread; page changes on the caller's.
        self.lock = lock if lock is not None else threading.RLock()
        self.page = 0
        self.query: Optional[str] = None

    @property
    def expanded(self) -> bool:
        return self.page > 0

    def refresh(self) -> None:
        """Collapse to page 0 and render from scratch."""
        with self.lock:
            self.page = 0
            self._load(0, append=False)

    def toggle(self) -> None:
        with self.lock:
            if self.expanded:
                self.refresh()
            else:
                self.page = 1
                self._load(1, append=True)

    def search(self, query: Optional[str]) -> None:
        with self.lock:
            self.query = query or None
            self.refresh()

    def delete(self, entry: dict) -> None:
        if not self.notifier.confirm("Delete this entry?"):
            return
        with self.lock:
            try:
                self.api.remove(entry["id"])
            except ApiError as exc:
                logger.warning("Delete of %s failed: %s", entry.get("id"), exc)
                self.notifier.alert("Delete failed")
                return
            self.view.remove_card(entry["id"])

    def _load(self, page: int, append: bool) -> None:
        if not append:
            self.view.show_message(LOADING)
        try:
            items = self.api.list_entries(
                self.kind, page=page, limit=self.limit, q=self.query
            )
        except ApiError:
            logger.exception("Failed to load %s entries", self.kind)
            self.view.show_message(FAILED)
            return

        if not items and not append:
            self.view.show_message(EMPTY)
        else:
            if not append:
                self.view.clear()
            for item in items:
                self.view.append_card(
                    build_card(
                        item,
                        session=self.session,
                        ui=self.ui,
                        on_delete=self.delete,
                        preview_chars=self.preview_chars,
                    )
                )

        if len(items) >= self.limit or self.expanded:
            self.view.set_toggle(VIEW_LESS if self.expanded else VIEW_MORE)
        else:
            self.view.set_toggle(None)


class Debouncer:
    """
    Calls ``callback`` once ``delay`` seconds after the last trigger.
    """

    def __init__(self, delay: float, callback: Callable[..., None]):
        self.delay = delay
        self.callback = callback
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._args: tuple = ()

    def __call__(self, *args) -> None:
        with self._lock:
            if self._timer:
                self._timer.cancel()
            self._args = args
            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def _fire(self) -> None:
        with self._lock:
            # A timer replaced after it started running must not fire.
            if threading.current_thread() is not self._timer:
                return
            self._timer = None
            args = self._args
        self.callback(*args)

    def flush(self) -> None:
        """Run a pending call now instead of waiting for the delay."""
        with self._lock:
            timer, self._timer = self._timer, None
            args = self._args
        if timer:
            timer.cancel()
            self.callback(*args)

    def cancel(self) -> None:
        with self._lock:
            if self._timer:
                self._timer.cancel()
            self._timer = None


class ListBoard:
    """The three kind lists plus the header search box."""

    def __init__(
        self,
        api: ApiClient,
        *,
        session: Session,
        ui: UiController,
        notifier: Notifier,
        limit: int = 3,
        search_delay: float = DEFAULT_SEARCH_DELAY,
        preview_chars: int = PREVIEW_MAX_CHARS,
        view_factory: Callable[[], ListView] = ListPanel,
    ):
        self.lock = threading.RLock()
        self.lists = {
            kind: ListController(
                kind,
                api,
                view_factory(),
                session=session,
                ui=ui,
                notifier=notifier,
                limit=limit,
                preview_chars=preview_chars,
                lock=self.lock,
            )
            for kind in ENTRY_KINDS
        }
        self.search_input = Debouncer(search_delay, self._run_search)

    def __getitem__(self, kind: str) -> ListController:
        return self.lists[kind]

    def load_all(self) -> None:
        with self.lock:
            for controller in self.lists.values():
                controller.refresh()

    def refresh_kind(self, kind: str) -> None:
        controller = self.lists.get(kind)
        if controller:
            controller.refresh()

    def on_search_input(self, text: str) -> None:
        self.search_input(text)

    def _run_search(self, text: str) -> None:
        query = (text or "").strip()
        logger.debug("Searching lists for %r", query)
        with self.lock:
            for controller in self.lists.values():
                controller.search(query)
