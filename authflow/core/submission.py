"""
Submission State Machine
------------------------
One lifecycle per form instance:

    Idle -> Submitting -> Succeeded(identity)      (terminal for authentication)
                       -> Failed(message) -> Submitting (retry)

Only a ValidatedForm can start a submission. A submit issued while Submitting is a
no-op; the in-flight call is never duplicated or queued.
"""
import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, ClassVar, Optional, Protocol, Union

from authflow.core.models import Identity
from authflow.errors import InvalidTransitionError, ServiceError
from authflow.forms.models import FormMode
from authflow.forms.validation import ValidatedForm
from authflow.observability.logging import log

IDLE = "Idle"
SUBMITTING = "Submitting"
SUCCEEDED = "Succeeded"
FAILED = "Failed"

GENERIC_FAILURE = "Something went wrong. Please try again."


@dataclass(frozen=True)
class Idle:
    kind: ClassVar[str] = IDLE


@dataclass(frozen=True)
class Submitting:
    kind: ClassVar[str] = SUBMITTING


@dataclass(frozen=True)
class Succeeded:
    identity: Identity
    kind: ClassVar[str] = SUCCEEDED


@dataclass(frozen=True)
class Failed:
    message: str
    kind: ClassVar[str] = FAILED


SubmissionState = Union[Idle, Submitting, Succeeded, Failed]

TRANSITIONS = {
    IDLE: {SUBMITTING},
    SUBMITTING: {SUCCEEDED, FAILED},
    FAILED: {SUBMITTING},
    SUCCEEDED: set(),
}


class IdentityService(Protocol):
    async def create_account(self, form: ValidatedForm) -> Identity: ...
    async def authenticate(self, form: ValidatedForm) -> Identity: ...


OnAuthenticated = Callable[[FormMode, Identity], Awaitable[None]]


class SubmissionMachine:
    def __init__(
        self,
        identity_service: IdentityService,
        *,
        on_authenticated: Optional[OnAuthenticated] = None,
        form_id: str = "",
    ):
        self.identity_service = identity_service
        self.on_authenticated = on_authenticated
        self.form_id = form_id
        self.state: SubmissionState = Idle()
        self.calls = 0
        self._notified = False

    @property
    def busy(self) -> bool:
        return isinstance(self.state, Submitting)

    @property
    def submit_disabled(self) -> bool:
        return isinstance(self.state, (Submitting, Succeeded))

    @property
    def error(self) -> Optional[str]:
        return self.state.message if isinstance(self.state, Failed) else None

    @property
    def identity(self) -> Optional[Identity]:
        return self.state.identity if isinstance(self.state, Succeeded) else None

    def _transition(self, new: SubmissionState) -> None:
        src = self.state.kind
        if new.kind not in TRANSITIONS[src]:
            raise InvalidTransitionError("submission", src, new.kind)
        self.state = new
        log(event="submission_transition", formId=self.form_id, src=src, dst=new.kind)

    async def _call(self, form: ValidatedForm) -> Identity:
        if form.mode is FormMode.SIGN_UP:
            return await self.identity_service.create_account(form)
        return await self.identity_service.authenticate(form)

    async def submit(self, form: ValidatedForm) -> SubmissionState:
        if not isinstance(form, ValidatedForm):
            raise TypeError("submit() requires a ValidatedForm")
        if self.busy:
            log(event="submission_ignored_in_flight", formId=self.form_id)
            return self.state

        # Entering Submitting also clears any prior Failed message
        self._transition(Submitting())
        self.calls += 1
        try:
            identity = await self._call(form)
        except ServiceError as e:
            log(event="submission_failed", formId=self.form_id, mode=form.mode.value,
                code=e.code, error=str(e)[:300])
            self._transition(Failed(e.user_message))
            return self.state
        except Exception as e:
            log(event="submission_failed_unexpected", formId=self.form_id, mode=form.mode.value,
                errorType=type(e).__name__, error=str(e)[:300])
            self._transition(Failed(GENERIC_FAILURE))
            return self.state
        except asyncio.CancelledError:
            log(event="submission_cancelled", formId=self.form_id, mode=form.mode.value)
            self._transition(Failed(GENERIC_FAILURE))
            raise

        self._transition(Succeeded(identity))
        await self._notify(form.mode, identity)
        return self.state

    async def _notify(self, mode: FormMode, identity: Identity) -> None:
        if self._notified or self.on_authenticated is None:
            return
        self._notified = True
        await self.on_authenticated(mode, identity)
