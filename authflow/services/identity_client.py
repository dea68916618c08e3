"""
Identity service adapter
------------------------
POST {IDENTITY_BASE_URL}/v1/accounts  (sign-up profile)  -> identity
POST {IDENTITY_BASE_URL}/v1/sessions  (email, password)  -> identity

Only accepts `ValidatedForm`; every failure surfaces as IdentityServiceError with a
user-safe message.
"""
from typing import Dict, Optional

import httpx

from authflow.core.models import Identity
from authflow.errors import IdentityServiceError
from authflow.forms.models import FormMode
from authflow.forms.validation import ValidatedForm
from authflow.observability.logging import log
from authflow.services.http import error_detail, post_json
from authflow.settings import settings

# status -> (code, user message)
_SIGN_UP_ERRORS = {
    409: ("duplicate_account", "An account with this email already exists."),
    400: ("rejected_fields", "Some of your details were rejected. Please review them and try again."),
    422: ("rejected_fields", "Some of your details were rejected. Please review them and try again."),
}
_SIGN_IN_ERRORS = {
    400: ("invalid_credentials", "Invalid email or password."),
    401: ("invalid_credentials", "Invalid email or password."),
    403: ("invalid_credentials", "Invalid email or password."),
    404: ("invalid_credentials", "Invalid email or password."),
}


def _require(form: ValidatedForm, mode: FormMode) -> None:
    if not isinstance(form, ValidatedForm):
        raise TypeError("identity service only accepts a ValidatedForm")
    if form.mode is not mode:
        raise TypeError(f"expected a {mode.value} form, got {form.mode.value}")


class IdentityClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.IDENTITY_BASE_URL).rstrip("/")
        self.api_key = settings.IDENTITY_API_KEY if api_key is None else api_key
        self.timeout = float(timeout or settings.SERVICE_TIMEOUT_SEC)
        self.max_retries = int(max_retries if max_retries is not None else settings.SERVICE_MAX_RETRIES)
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        h = {"Content-Type": "application/json"}
        if self.api_key:
            h["Authorization"] = f"Bearer {self.api_key}"
        return h

    async def create_account(self, form: ValidatedForm) -> Identity:
        _require(form, FormMode.SIGN_UP)
        return await self._call("/v1/accounts", dict(form.data), op="identity.create_account",
                                errors=_SIGN_UP_ERRORS, idempotent=False)

    async def authenticate(self, form: ValidatedForm) -> Identity:
        _require(form, FormMode.SIGN_IN)
        body = {"email": form["email"], "password": form["password"]}
        return await self._call("/v1/sessions", body, op="identity.authenticate",
                                errors=_SIGN_IN_ERRORS)

    async def _call(self, path: str, body: dict, *, op: str, errors: dict,
                    idempotent: bool = True) -> Identity:
        resp = await post_json(
            f"{self.base_url}{path}",
            body,
            op=op,
            error_cls=IdentityServiceError,
            headers=self._headers(),
            timeout=self.timeout,
            max_retries=self.max_retries,
            idempotent=idempotent,
            transport=self._transport,
        )

        if 200 <= resp.status_code < 300:
            try:
                return Identity.from_payload(resp.json())
            except ValueError as e:
                log(event="identity_bad_payload", op=op, error=str(e)[:200])
                raise IdentityServiceError("bad_response", status=resp.status_code, detail=str(e)) from e

        code, message = errors.get(resp.status_code, ("unexpected_status", None))
        log(event="identity_rejected", op=op, statusCode=int(resp.status_code), code=code,
            responseText=error_detail(resp))
        raise IdentityServiceError(code, message, status=resp.status_code, detail=error_detail(resp))
