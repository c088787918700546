"""
Existing-entries text for the suggestion prompt, per entry kind.

Only three kinds take part in suggestions. Each has its own formatter;
dispatch is on the kind tag, never on the record's shape.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, Iterable, Mapping
from uuid import uuid4

from ..resources.store import utc_now_iso
from ..utils.exceptions import InvalidInputError

STORY_EXCERPT_LENGTH = 100


class EntryKind(str, Enum):
    TODO = "todo"
    PLAN = "plan"
    STORY = "story"

    @classmethod
    def parse(cls, value: Any) -> "EntryKind":
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(k.value for k in cls)
            raise InvalidInputError(f"Unknown entry type {value!r}; expected one of {allowed}")


def _format_todo(record: Mapping[str, Any]) -> str:
    return str(record.get("task") or "")


def _format_plan(record: Mapping[str, Any]) -> str:
    title = str(record.get("title") or "")
    description = record.get("description")
    return f"{title}: {description}" if description else title


def _format_story(record: Mapping[str, Any]) -> str:
    title = str(record.get("title") or "")
    content = record.get("content")
    return f"{title}: {str(content)[:STORY_EXCERPT_LENGTH]}" if content else title


_FORMATTERS: Dict[EntryKind, Callable[[Mapping[str, Any]], str]] = {
    EntryKind.TODO: _format_todo,
    EntryKind.PLAN: _format_plan,
    EntryKind.STORY: _format_story,
}


def format_entry(kind: EntryKind, record: Mapping[str, Any]) -> str:
    return _FORMATTERS[EntryKind(kind)](record)


def existing_entries_text(kind: EntryKind, records: Iterable[Mapping[str, Any]]) -> str:
    """One line per record, or a bootstrap request when there are none."""
    kind = EntryKind(kind)
    lines = [line for line in (format_entry(kind, r) for r in records) if line]
    if not lines:
        return f"No existing {kind.value}s yet. Suggest some initial {kind.value}s."
    return "\n".join(lines)


def suggestion_to_record(kind: EntryKind, text: str) -> Dict[str, Any]:
    """The new entry added when the user accepts a suggestion."""
    kind = EntryKind(kind)
    base = {"id": uuid4().hex, "createdAt": utc_now_iso()}
    if kind is EntryKind.TODO:
        return {**base, "task": text, "completed": False}
    if kind is EntryKind.PLAN:
        return {**base, "title": text, "description": "AI Suggested - expand.", "status": "Not Started"}
    return {**base, "title": text, "content": "AI Suggested - write more.", "status": "Draft"}


def append_suggestion(entry, kind: EntryKind, text: str) -> Dict[str, Any]:
    """Append an accepted suggestion to a persisted collection."""
    record = suggestion_to_record(kind, text)
    entry.write(lambda previous: [*(previous or []), record])
    return record
