import asyncio
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from authflow.core.models import Identity
from authflow.errors import IdentityServiceError
from authflow.forms.models import FormMode
from authflow.services.identity_client import IdentityClient


def _client(handler, **kw):
    return IdentityClient("http://identity.test", "svc-key", max_retries=kw.pop("max_retries", 2),
                          transport=httpx.MockTransport(handler), **kw)


def test_authenticate_success(validated, sign_in_fields):
    seen = {}

    def handler(request: httpx.Request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"$id": "u-7", "email": "a@b.com", "name": "Ada"})

    identity = asyncio.run(_client(handler).authenticate(validated(FormMode.SIGN_IN, sign_in_fields)))

    assert identity == Identity(id="u-7", email="a@b.com", display_name="Ada")
    assert seen == {
        "path": "/v1/sessions",
        "auth": "Bearer svc-key",
        "body": {"email": "a@b.com", "password": "secret1"},
    }


def test_create_account_sends_narrowed_profile(validated, sign_up_fields):
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": "u-8", "firstName": "Ada", "lastName": "Lovelace"})

    identity = asyncio.run(_client(handler).create_account(validated(FormMode.SIGN_UP, sign_up_fields)))

    assert identity.display_name == "Ada Lovelace"
    assert seen["body"]["state"] == "NY"
    assert set(seen["body"]) == set(sign_up_fields)


def test_duplicate_account(validated, sign_up_fields):
    handler = lambda request: httpx.Response(409, json={"message": "user already exists"})
    with pytest.raises(IdentityServiceError) as exc:
        asyncio.run(_client(handler).create_account(validated(FormMode.SIGN_UP, sign_up_fields)))
    assert exc.value.code == "duplicate_account"
    assert exc.value.status == 409
    assert exc.value.user_message == "An account with this email already exists."


def test_invalid_credentials(validated, sign_in_fields):
    handler = lambda request: httpx.Response(401, json={"message": "bad password"})
    with pytest.raises(IdentityServiceError) as exc:
        asyncio.run(_client(handler).authenticate(validated(FormMode.SIGN_IN, sign_in_fields)))
    assert exc.value.code == "invalid_credentials"
    assert "bad password" not in exc.value.user_message


@patch("authflow.services.http._sleep_backoff", new_callable=AsyncMock)
def test_transient_status_is_retried(mock_sleep, validated, sign_in_fields):
    responses = [httpx.Response(503), httpx.Response(200, json={"id": "u-1"})]
    handler = lambda request: responses.pop(0)

    identity = asyncio.run(_client(handler).authenticate(validated(FormMode.SIGN_IN, sign_in_fields)))

    assert identity.id == "u-1"
    assert mock_sleep.await_count == 1


@patch("authflow.services.http._sleep_backoff", new_callable=AsyncMock)
def test_transport_failure_exhausts_retries(mock_sleep, validated, sign_in_fields):
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(IdentityServiceError) as exc:
        asyncio.run(_client(handler, max_retries=3).authenticate(validated(FormMode.SIGN_IN, sign_in_fields)))

    assert exc.value.code == "unavailable"
    assert len(calls) == 3
    assert mock_sleep.await_count == 2


def test_payload_without_id_is_a_bad_response(validated, sign_in_fields):
    handler = lambda request: httpx.Response(200, json={"email": "a@b.com"})
    with pytest.raises(IdentityServiceError) as exc:
        asyncio.run(_client(handler).authenticate(validated(FormMode.SIGN_IN, sign_in_fields)))
    assert exc.value.code == "bad_response"


def test_only_matching_validated_forms_are_accepted(validated, sign_in_fields):
    client = _client(lambda request: httpx.Response(200, json={"id": "x"}))
    with pytest.raises(TypeError):
        asyncio.run(client.authenticate({"email": "a@b.com", "password": "secret1"}))
    with pytest.raises(TypeError):
        asyncio.run(client.create_account(validated(FormMode.SIGN_IN, sign_in_fields)))


@patch("authflow.services.http._sleep_backoff", new_callable=AsyncMock)
def test_create_account_is_not_resent_after_read_timeout(mock_sleep, validated, sign_up_fields):
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ReadTimeout("read timed out", request=request)
        return httpx.Response(409, json={"message": "user already exists"})

    with pytest.raises(IdentityServiceError) as exc:
        asyncio.run(_client(handler, max_retries=3).create_account(validated(FormMode.SIGN_UP, sign_up_fields)))

    assert exc.value.code == "unavailable"
    assert len(calls) == 1
    mock_sleep.assert_not_awaited()


@patch("authflow.services.http._sleep_backoff", new_callable=AsyncMock)
def test_create_account_is_not_resent_after_server_error(mock_sleep, validated, sign_up_fields):
    responses = [httpx.Response(502), httpx.Response(201, json={"id": "u-2"})]
    handler = lambda request: responses.pop(0)

    with pytest.raises(IdentityServiceError) as exc:
        asyncio.run(_client(handler).create_account(validated(FormMode.SIGN_UP, sign_up_fields)))

    assert exc.value.code == "unavailable"
    assert len(responses) == 1


@patch("authflow.services.http._sleep_backoff", new_callable=AsyncMock)
def test_create_account_retries_when_never_connected(mock_sleep, validated, sign_up_fields):
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(201, json={"id": "u-3"})

    identity = asyncio.run(_client(handler).create_account(validated(FormMode.SIGN_UP, sign_up_fields)))

    assert identity.id == "u-3"
    assert len(calls) == 2
    assert mock_sleep.await_count == 1
