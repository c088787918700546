"""AI suggestions - propose new todos, plans and stories from existing ones"""

from .formatting import (
    EntryKind,
    append_suggestion,
    existing_entries_text,
    format_entry,
    suggestion_to_record,
)
from .service import SuggestionService, parse_suggestions

__all__ = [
    "EntryKind",
    "SuggestionService",
    "append_suggestion",
    "existing_entries_text",
    "format_entry",
    "parse_suggestions",
    "suggestion_to_record",
]
