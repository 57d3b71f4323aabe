"""
Card rendering for list items.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from bs4 import BeautifulSoup

from client.session import Session
from client.ui import UiController

PREVIEW_MAX_CHARS = 220
ELLIPSIS = "..."
# Saves closer together than this do not count as an edit.
EDITED_THRESHOLD = timedelta(seconds=1)


@dataclass
class CardAction:
    label: str
    handler: Callable[[], None]


@dataclass
class Card:
    entry_id: str
    kind: str
    meta: str
    title: Optional[str]
    preview: str
    actions: list[CardAction] = field(default_factory=list)

    @property
    def action_labels(self) -> list[str]:
        return [action.label for action in self.actions]

    def click(self, label: str) -> None:
        for action in self.actions:
            if action.label == label:
                action.handler()
                return
        raise KeyError(label)


def _parse_timestamp(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def edited_at(entry: dict) -> Optional[datetime]:
    """The update time, when it is meaningfully later than the creation time."""
    created = _parse_timestamp(entry.get("createdAt"))
    updated = _parse_timestamp(entry.get("updatedAt"))
    if not created or not updated:
        return None
    if updated - created > EDITED_THRESHOLD:
        return updated
    return None


def format_timestamp(value: datetime) -> str:
    return value.astimezone().strftime("%Y-%m-%d %H:%M")


def meta_line(entry: dict) -> str:
    meta = entry.get("ownerName") or "anon"
    edited = edited_at(entry)
    if edited:
        meta += f" • edited {format_timestamp(edited)}"
    return meta


def preview_text(body: Optional[str], max_chars: int = PREVIEW_MAX_CHARS) -> str:
    text = BeautifulSoup(body or "", "html.parser").get_text()
    if len(text) > max_chars:
        return text[:max_chars] + ELLIPSIS
    return text


def build_card(
    entry: dict,
    *,
    session: Session,
    ui: UiController,
    on_delete: Callable[[dict], None],
    preview_chars: int = PREVIEW_MAX_CHARS,
) -> Card:
    """
    Render one entry. Everyone gets "View"; the owner also gets "Edit" and
    "Delete".
    """
    actions = [CardAction("View", lambda: ui.open_view(entry))]
    if session.owns(entry):
        actions.append(CardAction("Edit", lambda: ui.open_edit_modal(entry)))
        actions.append(CardAction("Delete", lambda: on_delete(entry)))
    return Card(
        entry_id=entry.get("id", ""),
        kind=entry.get("kind", ""),
        meta=meta_line(entry),
        title=entry.get("title") or None,
        preview=preview_text(entry.get("body"), preview_chars),
        actions=actions,
    )
