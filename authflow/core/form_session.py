"""
Form Session
------------
One live form instance. Owns its mode, FormInputRecord, submission machine and post-auth
controller exclusively, and renders the form view a front-end displays verbatim.
"""
import time
from typing import Any, Dict, List, Mapping, Optional, Union

from authflow.core.post_auth import COMPLETING_LINK, REQUESTING_TOKEN, LinkProvider, Navigator, PostAuthController
from authflow.core.submission import IdentityService, Succeeded, SubmissionMachine
from authflow.errors import FormStateConflict
from authflow.forms.models import FieldSchema, FormMode
from authflow.forms.schema_resolver import coerce_mode, resolve
from authflow.forms.validation import Invalid, make_record, validate
from authflow.observability.logging import log

SUBMIT_LABELS = {FormMode.SIGN_IN: "Sign In", FormMode.SIGN_UP: "Sign Up"}
TITLES = {FormMode.SIGN_IN: "Sign-in", FormMode.SIGN_UP: "Sign-up"}
LOADING_LABEL = "Loading...."

PHASE_FORM = "form"
PHASE_LINK = "link_account"
PHASE_DONE = "done"


class FormSession:
    def __init__(
        self,
        form_id: str,
        mode: Union[FormMode, str],
        *,
        identity_service: IdentityService,
        link_provider: LinkProvider,
        navigator: Navigator,
    ):
        self.form_id = form_id
        self.mode = coerce_mode(mode)
        self.record: Dict[str, str] = make_record()
        self.field_errors: Dict[str, str] = {}
        self.navigator = navigator
        self.identity_service = identity_service
        self.controller = PostAuthController(link_provider, navigator, form_id=form_id)
        self.machine = self._new_machine()
        self.created_at = time.monotonic()
        self.touched_at = self.created_at

    def _new_machine(self) -> SubmissionMachine:
        return SubmissionMachine(
            self.identity_service,
            on_authenticated=self.controller.on_authenticated,
            form_id=self.form_id,
        )

    @property
    def schema(self) -> FieldSchema:
        return resolve(self.mode)

    @property
    def busy(self) -> bool:
        return self.machine.busy or self.controller.pending_call

    @property
    def phase(self) -> str:
        if self.controller.finished:
            return PHASE_DONE
        if self.controller.in_linking:
            return PHASE_LINK
        return PHASE_FORM

    def touch(self) -> None:
        self.touched_at = time.monotonic()

    def switch_mode(self, mode: Union[FormMode, str]) -> None:
        mode = coerce_mode(mode)
        if self.machine.busy or isinstance(self.machine.state, Succeeded):
            raise FormStateConflict(f"cannot switch mode while {self.machine.state.kind}")
        if mode is self.mode:
            return
        log(event="form_mode_switched", formId=self.form_id, src=self.mode.value, dst=mode.value)
        self.mode = mode
        self.field_errors = {}
        self.machine = self._new_machine()

    async def submit(self, fields: Optional[Mapping[str, Any]] = None) -> "FormSession":
        if self.machine.busy:
            log(event="submit_ignored_in_flight", formId=self.form_id)
            return self
        if isinstance(self.machine.state, Succeeded):
            log(event="submit_ignored_after_success", formId=self.form_id)
            return self

        self.record = make_record(fields)
        outcome = validate(self.record, self.schema)
        if isinstance(outcome, Invalid):
            self.field_errors = dict(outcome.errors)
            log(event="validation_failed", formId=self.form_id, mode=self.mode.value,
                fields=sorted(self.field_errors))
            return self

        self.field_errors = {}
        await self.machine.submit(outcome.form)
        return self

    async def retry_link_token(self) -> "FormSession":
        if self.controller.state.kind == REQUESTING_TOKEN:
            return self
        if self.controller.error is None:
            raise FormStateConflict("no failed link token request to retry")
        await self.controller.retry_link_token()
        return self

    async def complete_link(self, public_token: str) -> "FormSession":
        if self.controller.state.kind == COMPLETING_LINK:
            raise FormStateConflict("account linking is already being completed")
        if self.controller.token is None:
            raise FormStateConflict("account linking is not ready")
        await self.controller.complete_link(public_token)
        return self

    def abandon_link(self) -> "FormSession":
        if not self.controller.in_linking or self.controller.pending_call:
            raise FormStateConflict(f"cannot abandon linking while {self.controller.state.kind}")
        self.controller.abandon_link()
        return self

    # --- view -------------------------------------------------------------

    def _field_views(self) -> List[Dict[str, Any]]:
        out = []
        for f in self.schema:
            d = f.definition
            out.append({
                "name": d.name,
                "label": d.label,
                "placeholder": d.placeholder,
                "value": "" if d.secret else self.record.get(d.name, ""),
                "error": self.field_errors.get(d.name),
            })
        return out

    def view(self) -> Dict[str, Any]:
        phase = self.phase
        identity = self.controller.identity or self.machine.identity
        linking = self.mode is FormMode.SIGN_UP and identity is not None
        other = FormMode.SIGN_UP if self.mode is FormMode.SIGN_IN else FormMode.SIGN_IN

        token = self.controller.token
        return {
            "form_id": self.form_id,
            "mode": self.mode.value,
            "phase": phase,
            "title": "Link Account" if linking else TITLES[self.mode],
            "subtitle": "Link your account to get started" if linking else "Please enter your details",
            "fields": self._field_views() if phase == PHASE_FORM else [],
            "submission": {
                "state": self.machine.state.kind,
                "submit_label": LOADING_LABEL if self.machine.busy else SUBMIT_LABELS[self.mode],
                "submit_disabled": self.machine.submit_disabled,
                "loading": self.machine.busy,
                "error": self.machine.error,
            },
            "identity": (
                {"id": identity.id, "display_name": identity.display_name} if identity else None
            ),
            "link": None if not linking else {
                "state": self.controller.state.kind,
                "link_token": token.value if token else None,
                "expiration": token.expiration if token else None,
                "error": self.controller.error,
            },
            "redirect": getattr(self.navigator, "target", None),
            "switch": {
                "prompt": "Don't have an account ? " if self.mode is FormMode.SIGN_IN
                else "Already have an account ?",
                "label": SUBMIT_LABELS[other],
                "mode": other.value,
            },
        }
