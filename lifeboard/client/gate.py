"""
Route-level access gate for owner-scoped views.

While the session is unresolved the gate shows a placeholder, once anonymous
it redirects to the login entry point (carrying the requested path), and once
authenticated it renders the wrapped view with the owner id. It re-evaluates
on every session transition, so a logout while a view is shown redirects too.
Navigating away from the guarded path unmounts the gate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, List, Optional
from urllib.parse import urlencode

from ..utils.logger import get_logger
from .session import SessionManager, SessionState

logger = get_logger(__name__)

PLACEHOLDER = "placeholder"
REDIRECT = "redirect"
RENDER = "render"


class Navigator:
    """Minimal client-side router: a current path plus history."""

    def __init__(self, path: str = "/"):
        self.history: List[str] = [path]
        self._listeners: List[Callable[[str], None]] = []

    @property
    def current_path(self) -> str:
        return self.history[-1]

    def push(self, path: str) -> None:
        self.history.append(path)
        for listener in list(self._listeners):
            listener(path)

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


@dataclass(frozen=True)
class GateDecision:
    kind: str
    location: Optional[str] = None
    owner_id: Optional[str] = None


class AccessGate:
    """Blocks an owner-scoped view until the session resolves."""

    def __init__(
        self,
        session: SessionManager,
        navigator: Navigator,
        login_path: str = "/login",
        redirect_param: str = "redirect",
    ):
        self.session = session
        self.navigator = navigator
        self.login_path = login_path
        self.redirect_param = redirect_param
        self.decision: Optional[GateDecision] = None
        self.content: Any = None
        self._path: Optional[str] = None
        self._view: Optional[Callable[[str], Any]] = None
        self._unsubscribers: List[Callable[[], None]] = []

    def login_location(self, path: str) -> str:
        query = urlencode({self.redirect_param: path}, safe="/")
        return f"{self.login_path}?{query}"

    def evaluate(self, path: Optional[str] = None) -> GateDecision:
        """Decide what to show for ``path`` given the current session state."""
        path = path or self._path or self.navigator.current_path
        state = self.session.state
        if state is SessionState.UNRESOLVED:
            return GateDecision(PLACEHOLDER)
        if state is SessionState.ANONYMOUS:
            return GateDecision(REDIRECT, location=self.login_location(path))
        return GateDecision(RENDER, owner_id=self.session.owner_id)

    def mount(self, view: Callable[[str], Any], path: Optional[str] = None) -> GateDecision:
        """Guard ``view(owner_id)`` at ``path`` (defaults to the current path)."""
        self.unmount()
        self._view = view
        self._path = path or self.navigator.current_path
        self._unsubscribers = [
            self.session.subscribe(lambda _manager: self._reevaluate()),
            self.navigator.subscribe(self._on_navigate),
        ]
        return self._reevaluate()

    def unmount(self) -> None:
        while self._unsubscribers:
            self._unsubscribers.pop()()
        self._view = None
        self.content = None
        self.decision = None

    @property
    def mounted(self) -> bool:
        return self._view is not None

    def _on_navigate(self, path: str) -> None:
        if path == self._path:
            return
        # Our own login redirect keeps the gate mounted
        if self.decision is not None and path == self.decision.location:
            return
        logger.debug("Left guarded view", path=self._path, location=path)
        self.unmount()

    def _reevaluate(self) -> GateDecision:
        decision = self.evaluate(self._path)
        previous = self.decision
        self.decision = decision
        if decision.kind == RENDER:
            if previous is None or previous.kind != RENDER or previous.owner_id != decision.owner_id:
                self.content = self._view(decision.owner_id) if self._view else None
        else:
            self.content = None
        if decision.kind == REDIRECT and (previous is None or previous.kind != REDIRECT):
            logger.info("Redirecting unauthenticated visit", path=self._path, location=decision.location)
            self.navigator.push(decision.location)
        return decision
