"""Tests for the client session manager"""

import asyncio
import json

import pytest

from lifeboard.client.session import Session, SessionManager, SessionState
from lifeboard.utils.exceptions import (
    AuthenticationError,
    InvalidInputError,
    ServiceError,
    TransportError,
)


@pytest.fixture
def area(backend):
    return backend.open_area()


@pytest.fixture
def manager(area, credentials):
    return SessionManager(area, credentials)


def _stored(area):
    raw = area.get_item("currentUser")
    return json.loads(raw) if raw is not None else None


def test_starts_unresolved(manager):
    assert manager.state is SessionState.UNRESOLVED
    assert not manager.is_resolved
    assert manager.owner_id is None


def test_resolve_without_record_is_anonymous(manager):
    assert manager.resolve() is SessionState.ANONYMOUS
    assert manager.session is None


def test_resolve_restores_persisted_session(area, credentials):
    area.set_item(
        "currentUser",
        json.dumps({"id": "u1", "email": "a@b.com", "createdAt": "2026-01-01T00:00:00Z", "token": "t"}),
    )
    manager = SessionManager(area, credentials)

    assert manager.resolve() is SessionState.AUTHENTICATED
    assert manager.owner_id == "u1"
    assert manager.token == "t"
    assert credentials.calls == []


@pytest.mark.parametrize("raw", ["{broken", "[]", json.dumps({"email": "a@b.com"}), json.dumps({"id": "u1"})])
def test_resolve_discards_malformed_record(area, credentials, raw):
    area.set_item("currentUser", raw)
    manager = SessionManager(area, credentials)

    assert manager.resolve() is SessionState.ANONYMOUS
    assert area.get_item("currentUser") is None


def test_resolve_is_idempotent(manager, area):
    manager.resolve()
    area.set_item("currentUser", json.dumps({"id": "u1", "email": "a@b.com"}))

    assert manager.resolve() is SessionState.ANONYMOUS


def test_login_persists_session(manager, area, credentials):
    manager.resolve()

    session = asyncio.run(manager.login(" a@b.com ", "abcdef"))

    assert manager.state is SessionState.AUTHENTICATED
    assert session == manager.session
    assert credentials.calls == [("login", "a@b.com")]
    assert _stored(area) == session.to_record()


@pytest.mark.parametrize("email, password", [("", "abcdef"), ("   ", "abcdef"), ("a@b.com", "")])
def test_login_rejects_blank_input_before_network(manager, credentials, email, password):
    with pytest.raises(InvalidInputError):
        asyncio.run(manager.login(email, password))
    assert credentials.calls == []


@pytest.mark.parametrize(
    "error",
    [
        AuthenticationError("Invalid credentials"),
        TransportError("Could not reach the server."),
        ServiceError("Something went wrong."),
    ],
)
def test_login_failure_clears_session(manager, area, credentials, error):
    asyncio.run(manager.login("a@b.com", "abcdef"))
    credentials.error = error

    with pytest.raises(type(error)) as exc_info:
        asyncio.run(manager.login("a@b.com", "wrong-password"))

    assert exc_info.value.message == error.message
    assert manager.state is SessionState.ANONYMOUS
    assert area.get_item("currentUser") is None


def test_register_short_password_never_hits_network(manager, credentials):
    with pytest.raises(InvalidInputError, match="at least 6"):
        asyncio.run(manager.register("a@b.com", "123"))
    assert credentials.calls == []
    assert manager.state is SessionState.UNRESOLVED


def test_register_respects_configured_minimum(area, credentials):
    manager = SessionManager(area, credentials, min_password_length=10)

    with pytest.raises(InvalidInputError):
        asyncio.run(manager.register("a@b.com", "abcdef"))


def test_register_then_login_give_same_session(manager, area):
    registered = asyncio.run(manager.register("a@b.com", "abcdef"))
    stored_after_register = _stored(area)
    logged_in = asyncio.run(manager.login("a@b.com", "abcdef"))

    assert manager.state is SessionState.AUTHENTICATED
    assert registered == logged_in
    assert _stored(area) == stored_after_register


def test_logout_navigates_before_clearing(manager, area):
    asyncio.run(manager.login("a@b.com", "abcdef"))
    observed = []

    def navigate():
        observed.append((manager.state, area.get_item("currentUser") is not None))

    manager.logout(navigate=navigate)

    assert observed == [(SessionState.AUTHENTICATED, True)]
    assert manager.state is SessionState.ANONYMOUS
    assert area.get_item("currentUser") is None


def test_subscribers_notified_on_transitions(manager):
    states = []
    manager.subscribe(lambda m: states.append(m.state))

    manager.resolve()
    asyncio.run(manager.login("a@b.com", "abcdef"))
    manager.logout()

    assert states == [SessionState.ANONYMOUS, SessionState.AUTHENTICATED, SessionState.ANONYMOUS]


class GatedCredentials:
    """Login calls block until released, so completion order can be chosen."""

    def __init__(self):
        self.gates = {}

    async def login(self, email, password):
        gate = self.gates.setdefault(email, asyncio.Event())
        await gate.wait()
        return {"id": f"id-{email}", "email": email, "createdAt": ""}

    register = login


def test_latest_login_wins_over_slower_earlier_call(area):
    credentials = GatedCredentials()
    manager = SessionManager(area, credentials)

    async def scenario():
        first = asyncio.ensure_future(manager.login("first@b.com", "abcdef"))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(manager.login("second@b.com", "abcdef"))
        await asyncio.sleep(0)
        credentials.gates["second@b.com"].set()
        await second
        credentials.gates["first@b.com"].set()
        await first

    asyncio.run(scenario())

    assert manager.owner_id == "id-second@b.com"
    assert _stored(area)["id"] == "id-second@b.com"


def test_logout_abandons_in_flight_login(area):
    credentials = GatedCredentials()
    manager = SessionManager(area, credentials)
    manager.resolve()

    async def scenario():
        pending = asyncio.ensure_future(manager.login("a@b.com", "abcdef"))
        await asyncio.sleep(0)
        manager.logout()
        credentials.gates["a@b.com"].set()
        await pending

    asyncio.run(scenario())

    assert manager.state is SessionState.ANONYMOUS
    assert area.get_item("currentUser") is None


def test_follows_login_and_logout_in_other_tab(backend, credentials):
    tab_a = SessionManager(backend.open_area(), credentials)
    tab_b = SessionManager(backend.open_area(), credentials)
    tab_a.resolve()
    tab_b.resolve()

    async def login_in_tab_a():
        await tab_a.login("a@b.com", "abcdef")
        # Cross-tab events arrive on a later loop turn
        assert tab_b.state is SessionState.ANONYMOUS
        await asyncio.sleep(0)

    asyncio.run(login_in_tab_a())
    assert tab_b.state is SessionState.AUTHENTICATED
    assert tab_b.owner_id == tab_a.owner_id

    tab_a.logout()
    assert tab_b.state is SessionState.ANONYMOUS


def test_closed_manager_stops_following(backend, credentials):
    tab_a = SessionManager(backend.open_area(), credentials)
    tab_b = SessionManager(backend.open_area(), credentials)
    tab_b.resolve()
    tab_b.close()

    async def login_in_tab_a():
        await tab_a.login("a@b.com", "abcdef")
        await asyncio.sleep(0)

    asyncio.run(login_in_tab_a())

    assert tab_b.state is SessionState.ANONYMOUS


def test_session_record_round_trip():
    session = Session(owner_id="u1", email="a@b.com", created_at="2026-01-01T00:00:00Z")

    assert session.to_record() == {"id": "u1", "email": "a@b.com", "createdAt": "2026-01-01T00:00:00Z"}
    assert Session.from_record(session.to_record()) == session
