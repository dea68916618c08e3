import asyncio
from typing import List, Optional

import pytest

from authflow.core.models import Identity, LinkToken
from authflow.forms.schema_resolver import resolve
from authflow.forms.validation import make_record, validate


class FakeIdentityService:
    def __init__(self, identity: Optional[Identity] = None):
        self.identity = identity or Identity(
            id="user-1", email="ada@example.com", first_name="Ada",
            last_name="Lovelace", display_name="Ada Lovelace",
        )
        # One entry per call: an exception to raise, or None to succeed
        self.errors: List[Optional[Exception]] = []
        self.calls = []
        # Set to an asyncio.Event to hold calls in flight until it is set
        self.gate: Optional[asyncio.Event] = None

    async def _run(self, op, form):
        self.calls.append((op, form))
        if self.gate is not None:
            await self.gate.wait()
        if self.errors:
            err = self.errors.pop(0)
            if err is not None:
                raise err
        return self.identity

    async def create_account(self, form):
        return await self._run("create_account", form)

    async def authenticate(self, form):
        return await self._run("authenticate", form)


class FakeLinkProvider:
    def __init__(self):
        self.token_errors: List[Optional[Exception]] = []
        self.exchange_errors: List[Optional[Exception]] = []
        self.token_calls = []
        self.exchange_calls = []
        self.exchange_gate: Optional[asyncio.Event] = None

    async def create_link_token(self, identity):
        self.token_calls.append(identity)
        if self.token_errors:
            err = self.token_errors.pop(0)
            if err is not None:
                raise err
        return LinkToken(value=f"link-sandbox-{len(self.token_calls)}", identity_id=identity.id,
                         expiration="2030-01-01T00:00:00Z")

    async def exchange_public_token(self, identity, public_token):
        self.exchange_calls.append((identity, public_token))
        if self.exchange_gate is not None:
            await self.exchange_gate.wait()
        if self.exchange_errors:
            err = self.exchange_errors.pop(0)
            if err is not None:
                raise err
        return "item-1"


class FakeNavigator:
    def __init__(self):
        self.calls = 0
        self.target = None

    def navigate_to_authenticated_home(self):
        self.calls += 1
        self.target = "/"


@pytest.fixture
def identity_service():
    return FakeIdentityService()


@pytest.fixture
def link_provider():
    return FakeLinkProvider()


@pytest.fixture
def navigator():
    return FakeNavigator()


@pytest.fixture
def sign_in_fields():
    return {"email": "a@b.com", "password": "secret1"}


@pytest.fixture
def sign_up_fields():
    return {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "address1": "12 Analytical Row",
        "city": "London",
        "state": "ny",
        "postalCode": "10001",
        "dateOfBirth": "1990-12-10",
        "ssn": "1234",
        "email": "Ada@Example.com",
        "password": "engine-42",
    }


@pytest.fixture
def validated():
    """Build a ValidatedForm the only way one can be built."""
    def _make(mode, fields):
        outcome = validate(make_record(fields), resolve(mode))
        assert outcome.is_valid, getattr(outcome, "errors", None)
        return outcome.form
    return _make
