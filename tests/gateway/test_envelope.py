"""Tests for ResponseEnvelope decoding and the session header variants."""

from typing import Any

import pydantic
import pytest

from proxmox_api.gateway import types


class Storage(pydantic.BaseModel):
    storage: str
    type: str
    active: bool = False


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('{"data": 1}', True),
        ('{"data": 1, "success": true}', True),
        ('{"data": 1, "success": 1}', True),
        ('{"data": 1, "success": false}', False),
        ('{"data": 1, "errors": {"a": "b"}}', False),
        ('{"data": 1, "errors": null}', True),
        ('{"data": 1, "errors": {}, "success": true}', True),
        ('{"data": 1, "errors": {"a": "b"}, "success": true}', True),
        ('{"data": 1, "errors": {}, "success": false}', False),
    ],
)
def test_is_success(raw, expected):
    """An explicit flag decides; without one, an empty error map means success."""
    envelope = types.ResponseEnvelope[Any].model_validate_json(raw)

    assert envelope.is_success is expected


def test_typed_data_is_validated():
    raw = '{"data": [{"storage": "local", "type": "dir", "active": 1}]}'

    envelope = types.ResponseEnvelope[list[Storage]].model_validate_json(raw)

    assert envelope.data == [Storage(storage="local", type="dir", active=True)]
    assert envelope.errors == {}


def test_missing_data_defaults_to_none():
    envelope = types.ResponseEnvelope[Storage].model_validate_json("{}")

    assert envelope.data is None
    assert envelope.is_success


def test_auth_ticket_reads_csrf_alias():
    ticket = types.AuthTicket.model_validate(
        {
            "ticket": "PVE:root@pam:ABC",
            "CSRFPreventionToken": "X:Y",
            "cap": {"vms": {}},
        },
    )

    assert ticket.ticket == "PVE:root@pam:ABC"
    assert ticket.csrf_token == "X:Y"


# ---------------------------------------------------------------------------
# Session header construction
# ---------------------------------------------------------------------------


def test_ticket_session_headers():
    session = types.TicketSession(ticket="TKT", csrf_token="CSRF")

    assert session.headers(mutating=False) == {"Cookie": "PVEAuthCookie=TKT"}
    assert session.headers(mutating=True) == {
        "Cookie": "PVEAuthCookie=TKT",
        "CSRFPreventionToken": "CSRF",
    }


@pytest.mark.parametrize("mutating", [True, False])
def test_token_session_headers(mutating):
    session = types.TokenSession(token="root@pam!ci=secret")

    assert session.headers(mutating=mutating) == {
        "Authorization": "PVEAPIToken=root@pam!ci=secret",
    }


def test_auth_session_union_discriminates_on_scheme():
    adapter = pydantic.TypeAdapter(types.AuthSession)

    ticket = adapter.validate_python(
        {"scheme": "ticket", "ticket": "t", "csrf_token": "c"},
    )
    token = adapter.validate_python({"scheme": "token", "token": "a=b"})

    assert isinstance(ticket, types.TicketSession)
    assert isinstance(token, types.TokenSession)


def test_sessions_hide_secrets_in_repr():
    session = types.TicketSession(ticket="secret-ticket", csrf_token="secret-csrf")

    assert "secret" not in repr(session)
