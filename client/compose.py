"""
The compose modal: one surface reused to create, edit and view entries.
"""

from __future__ import annotations

import base64
import logging
import mimetypes
from dataclasses import dataclass
from enum import Enum
from html import escape
from pathlib import Path
from typing import Callable, Optional

from client.api import ApiClient, ApiError
from client.ui import Notifier
from shared.types import EntryKind

logger = logging.getLogger(__name__)

POST_LABEL = "Post"
SAVE_LABEL = "Save"


class ComposeMode(str, Enum):
    CREATE = "create"
    EDIT = "edit"
    VIEW = "view"


@dataclass
class ComposeModal:
    visible: bool = False
    mode: ComposeMode = ComposeMode.CREATE
    kind: str = EntryKind.THOUGHT.value
    title: str = ""
    inputs_enabled: bool = True
    submit_label: str = POST_LABEL
    submit_visible: bool = True
    submit_enabled: bool = True


class RichTextEditor:
    """
    Minimal model of the rich-text widget: an HTML document, a cursor offset
    into it and an enabled flag.
    """

    def __init__(self):
        self.html = ""
        self.cursor: Optional[int] = None
        self.enabled = True

    def set_html(self, html: str) -> None:
        self.html = html or ""
        self.cursor = None

    def clear(self) -> None:
        self.set_html("")

    def enable(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def set_cursor(self, index: int) -> None:
        self.cursor = max(0, min(index, len(self.html)))

    def insert_image(self, url: str) -> None:
        at = len(self.html) if self.cursor is None else self.cursor
        tag = f'<img src="{escape(url)}">'
        self.html = self.html[:at] + tag + self.html[at:]
        self.cursor = at + len(tag)


class ComposeController:
    """
    Drives the modal and its editor. Implements the ``UiController`` interface
    the list cards use to open entries.
    """

    def __init__(
        self,
        api: ApiClient,
        editor: RichTextEditor,
        notifier: Notifier,
        *,
        on_saved: Optional[Callable[[str], None]] = None,
    ):
        self.api = api
        self.editor = editor
        self.notifier = notifier
        self.on_saved = on_saved
        self.modal = ComposeModal()
        self.edit_entry_id: Optional[str] = None
        # Kind of the entry being edited; kind cannot change after creation.
        self.edit_kind: Optional[str] = None

    @property
    def mode(self) -> ComposeMode:
        return self.modal.mode

    def _set_inputs(self, enabled: bool) -> None:
        self.modal.inputs_enabled = enabled
        self.editor.enable(enabled)

    def _reset(self, kind: str = EntryKind.THOUGHT.value) -> None:
        self.edit_entry_id = None
        self.edit_kind = None
        self.modal.mode = ComposeMode.CREATE
        self.modal.kind = kind
        self.modal.title = ""
        self.modal.submit_label = POST_LABEL
        self.modal.submit_visible = True
        self._set_inputs(True)
        self.editor.clear()

    def open_create(self, kind: str = EntryKind.THOUGHT.value) -> None:
        self._reset(kind or EntryKind.THOUGHT.value)
        self.modal.visible = True

    def open_edit_modal(self, entry: dict) -> None:
        self.edit_entry_id = entry["id"]
        self.edit_kind = entry.get("kind") or EntryKind.THOUGHT.value
        self.modal.mode = ComposeMode.EDIT
        self.modal.kind = self.edit_kind
        self.modal.title = entry.get("title") or ""
        self.modal.submit_label = SAVE_LABEL
        self.modal.submit_visible = True
        self._set_inputs(True)
        self.editor.set_html(entry.get("body") or "")
        self.modal.visible = True

    def open_view(self, entry: dict) -> None:
        self.edit_entry_id = None
        self.edit_kind = None
        self.modal.mode = ComposeMode.VIEW
        self.modal.kind = entry.get("kind") or EntryKind.THOUGHT.value
        self.modal.title = entry.get("title") or ""
        self.editor.set_html(entry.get("body") or "")
        self._set_inputs(False)
        self.modal.submit_visible = False
        self.modal.visible = True

    def close(self) -> None:
        self.modal.visible = False
        self.edit_entry_id = None
        self.edit_kind = None
        self.modal.mode = ComposeMode.CREATE
        self.modal.submit_label = POST_LABEL
        self.modal.submit_visible = True
        self._set_inputs(True)

    def submit(self) -> bool:
        """Create or save the entry; returns True when the call succeeded."""
        if self.modal.mode is ComposeMode.VIEW or not self.modal.submit_enabled:
            return False
        editing = self.modal.mode is ComposeMode.EDIT and self.edit_entry_id is not None
        kind = self.edit_kind if editing else self.modal.kind
        title = self.modal.title or ""
        body = self.editor.html

        idle_label = self.modal.submit_label
        self.modal.submit_enabled = False
        self.modal.submit_label = "Saving..." if editing else "Posting..."
        try:
            if editing:
                self.api.edit(self.edit_entry_id, title=title, body=body)
            else:
                self.api.create(kind, title, body)
        except ApiError as exc:
            logger.warning("Submitting %s entry failed: %s", kind, exc)
            self.modal.submit_label = idle_label
            self.notifier.alert("Post failed")
            return False
        finally:
            self.modal.submit_enabled = True

        self.modal.visible = False
        if self.on_saved:
            self.on_saved(kind)
        self._reset(kind)
        return True

    def insert_image(self, path: str | Path) -> Optional[str]:
        """
        Upload a picked file and embed it at the cursor. Returns the image
        url, or None when the upload failed and the editor was left alone.
        """
        if not self.modal.inputs_enabled:
            return None
        path = Path(path)
        mime = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        try:
            data = base64.b64encode(path.read_bytes()).decode("ascii")
            uploaded = self.api.upload_image(mime, data)
        except (OSError, ApiError) as exc:
            logger.warning("Image upload failed: %s", exc)
            self.notifier.alert("Image upload failed (login required)")
            return None
        self.editor.insert_image(uploaded["url"])
        return uploaded["url"]
