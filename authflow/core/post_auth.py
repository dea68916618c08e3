"""
Post-Auth Transition Controller
-------------------------------
Runs once per successful authentication:

- sign-in : navigate to the authenticated home, flow ends.
- sign-up : request a link token, then wait in the linking sub-state until the widget
            reports a linked account or the user abandons.

"Authenticated" (the identity held here) stays distinct from "linking complete".
"""
import asyncio
from dataclasses import dataclass
from typing import ClassVar, Optional, Protocol, Union

from authflow.core.models import Identity, LinkToken
from authflow.errors import InvalidTransitionError, ServiceError
from authflow.forms.models import FormMode
from authflow.observability.logging import log

PENDING = "Pending"
NAVIGATED = "Navigated"
REQUESTING_TOKEN = "RequestingToken"
LINK_READY = "LinkReady"
COMPLETING_LINK = "CompletingLink"
LINK_FAILED = "LinkFailed"
LINK_COMPLETED = "LinkCompleted"
LINK_ABANDONED = "LinkAbandoned"

TERMINAL = {NAVIGATED, LINK_COMPLETED, LINK_ABANDONED}

TRANSITIONS = {
    PENDING: {NAVIGATED, REQUESTING_TOKEN},
    REQUESTING_TOKEN: {LINK_READY, LINK_FAILED},
    LINK_READY: {COMPLETING_LINK, LINK_ABANDONED},
    COMPLETING_LINK: {LINK_COMPLETED, LINK_FAILED},
    LINK_FAILED: {REQUESTING_TOKEN, LINK_ABANDONED},
    NAVIGATED: set(),
    LINK_COMPLETED: set(),
    LINK_ABANDONED: set(),
}

GENERIC_LINK_FAILURE = "We couldn't start account linking. Please try again."


@dataclass(frozen=True)
class Pending:
    kind: ClassVar[str] = PENDING


@dataclass(frozen=True)
class Navigated:
    kind: ClassVar[str] = NAVIGATED


@dataclass(frozen=True)
class RequestingToken:
    kind: ClassVar[str] = REQUESTING_TOKEN


@dataclass(frozen=True)
class LinkReady:
    token: LinkToken
    kind: ClassVar[str] = LINK_READY


@dataclass(frozen=True)
class CompletingLink:
    kind: ClassVar[str] = COMPLETING_LINK


@dataclass(frozen=True)
class LinkFailed:
    message: str
    kind: ClassVar[str] = LINK_FAILED


@dataclass(frozen=True)
class LinkCompleted:
    item_id: str = ""
    kind: ClassVar[str] = LINK_COMPLETED


@dataclass(frozen=True)
class LinkAbandoned:
    kind: ClassVar[str] = LINK_ABANDONED


PostAuthState = Union[Pending, Navigated, RequestingToken, LinkReady, CompletingLink, LinkFailed, LinkCompleted, LinkAbandoned]


class LinkProvider(Protocol):
    async def create_link_token(self, identity: Identity) -> LinkToken: ...
    async def exchange_public_token(self, identity: Identity, public_token: str) -> str: ...


class Navigator(Protocol):
    def navigate_to_authenticated_home(self) -> None: ...


class PostAuthController:
    def __init__(self, link_provider: LinkProvider, navigator: Navigator, *, form_id: str = ""):
        self.link_provider = link_provider
        self.navigator = navigator
        self.form_id = form_id
        self.state: PostAuthState = Pending()
        self.identity: Optional[Identity] = None
        self.mode: Optional[FormMode] = None

    @property
    def finished(self) -> bool:
        return self.state.kind in TERMINAL

    @property
    def in_linking(self) -> bool:
        return self.state.kind in (REQUESTING_TOKEN, LINK_READY, COMPLETING_LINK, LINK_FAILED)

    @property
    def pending_call(self) -> bool:
        return self.state.kind in (REQUESTING_TOKEN, COMPLETING_LINK)

    @property
    def token(self) -> Optional[LinkToken]:
        return self.state.token if isinstance(self.state, LinkReady) else None

    @property
    def error(self) -> Optional[str]:
        return self.state.message if isinstance(self.state, LinkFailed) else None

    def _transition(self, new: PostAuthState) -> None:
        src = self.state.kind
        if new.kind not in TRANSITIONS[src]:
            raise InvalidTransitionError("post_auth", src, new.kind)
        self.state = new
        log(event="post_auth_transition", formId=self.form_id, src=src, dst=new.kind)

    async def on_authenticated(self, mode: FormMode, identity: Identity) -> None:
        if self.identity is not None:
            raise InvalidTransitionError("post_auth", self.state.kind, "on_authenticated")
        self.mode = mode
        self.identity = identity

        if mode is FormMode.SIGN_IN:
            self._transition(Navigated())
            self.navigator.navigate_to_authenticated_home()
            return

        await self._request_token()

    async def retry_link_token(self) -> None:
        """Re-request a token for the already-authenticated identity; the form is not re-validated."""
        if not isinstance(self.state, LinkFailed):
            raise InvalidTransitionError("post_auth", self.state.kind, REQUESTING_TOKEN)
        await self._request_token()

    async def _request_token(self) -> None:
        self._transition(RequestingToken())
        log(event="link_token_requested", formId=self.form_id, identityId=self.identity.id)
        try:
            token = await self.link_provider.create_link_token(self.identity)
        except ServiceError as e:
            log(event="link_token_failed", formId=self.form_id, code=e.code, error=str(e)[:300])
            self._transition(LinkFailed(e.user_message))
            return
        except Exception as e:
            log(event="link_token_failed_unexpected", formId=self.form_id,
                errorType=type(e).__name__, error=str(e)[:300])
            self._transition(LinkFailed(GENERIC_LINK_FAILURE))
            return
        except asyncio.CancelledError:
            self._transition(LinkFailed(GENERIC_LINK_FAILURE))
            raise
        self._transition(LinkReady(token))

    async def complete_link(self, public_token: str) -> None:
        """Widget reported a linked account: hand the handle to the provider and end the flow."""
        if not isinstance(self.state, LinkReady):
            raise InvalidTransitionError("post_auth", self.state.kind, LINK_COMPLETED)
        # Entered before the await: the single-use handle is sent at most once
        self._transition(CompletingLink())
        try:
            item_id = await self.link_provider.exchange_public_token(self.identity, public_token)
        except ServiceError as e:
            # The token was consumed by the widget; a retry needs a fresh one
            log(event="link_handoff_failed", formId=self.form_id, code=e.code, error=str(e)[:300])
            self._transition(LinkFailed(e.user_message))
            return
        except Exception as e:
            log(event="link_handoff_failed_unexpected", formId=self.form_id,
                errorType=type(e).__name__, error=str(e)[:300])
            self._transition(LinkFailed(GENERIC_LINK_FAILURE))
            return
        except asyncio.CancelledError:
            self._transition(LinkFailed(GENERIC_LINK_FAILURE))
            raise
        self._transition(LinkCompleted(item_id))
        log(event="link_completed", formId=self.form_id, identityId=self.identity.id)

    def abandon_link(self) -> None:
        self._transition(LinkAbandoned())
        log(event="link_abandoned", formId=self.form_id,
            identityId=self.identity.id if self.identity else None)
