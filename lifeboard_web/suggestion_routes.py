"""
FastAPI route for AI suggestions.

    POST /ai/suggestions {"type": "todo"|"plan"|"story", "existingEntries": "..."}
    POST /ai/suggestions {"type": ..., "entries": [record, ...]}
        -> 200 {"suggestions": ["...", ...]}
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool

from lifeboard.resources.models import WireModel
from lifeboard.suggestions import EntryKind, SuggestionService, existing_entries_text
from .auth_middleware import require_login

router = APIRouter(prefix="/ai", tags=["ai"])


class SuggestionRequest(WireModel):
    type: str
    existing_entries: Optional[str] = None
    entries: Optional[List[Dict[str, Any]]] = None


def get_suggestion_service(request: Request) -> SuggestionService:
    return request.app.state.suggestions


@router.post("/suggestions")
async def suggest(request: Request, body: SuggestionRequest) -> Dict[str, List[str]]:
    if request.app.state.settings.auth.require_session:
        await require_login(request)
    kind = EntryKind.parse(body.type)
    corpus = body.existing_entries
    if not corpus:
        corpus = existing_entries_text(kind, body.entries or [])
    service = get_suggestion_service(request)
    suggestions = await run_in_threadpool(service.suggest, kind, corpus)
    return {"suggestions": suggestions}
