"""End-to-end flows over a single form instance."""
import asyncio

from authflow.core.form_session import FormSession
from authflow.core.post_auth import LINK_FAILED, LINK_READY
from authflow.core.submission import FAILED, SUCCEEDED, SUBMITTING
from authflow.errors import IdentityServiceError, LinkProviderError
from authflow.forms.models import FormMode
from authflow.forms.schema_resolver import resolve
from authflow.forms.validation import Invalid, Valid, make_record, validate


def _session(mode, identity_service, link_provider, navigator):
    return FormSession("form-x", mode, identity_service=identity_service,
                       link_provider=link_provider, navigator=navigator)


def test_scenario_a_sign_in_success(identity_service, link_provider, navigator):
    fields = {"email": "a@b.com", "password": "secret1"}
    assert isinstance(validate(make_record(fields), resolve(FormMode.SIGN_IN)), Valid)

    session = _session(FormMode.SIGN_IN, identity_service, link_provider, navigator)
    asyncio.run(session.submit(fields))

    assert session.machine.state.kind == SUCCEEDED
    assert navigator.calls == 1


def test_scenario_b_missing_email(identity_service, link_provider, navigator):
    fields = {"email": "", "password": "x"}
    outcome = validate(make_record(fields), resolve(FormMode.SIGN_IN))
    assert isinstance(outcome, Invalid)
    assert set(outcome.errors) == {"email"}

    session = _session(FormMode.SIGN_IN, identity_service, link_provider, navigator)
    asyncio.run(session.submit(fields))
    assert identity_service.calls == []


def test_scenario_c_sign_up_enters_linking(identity_service, link_provider, navigator, sign_up_fields):
    assert len(resolve(FormMode.SIGN_UP)) == 10
    session = _session(FormMode.SIGN_UP, identity_service, link_provider, navigator)
    asyncio.run(session.submit(sign_up_fields))

    assert session.machine.state.kind == SUCCEEDED
    assert session.controller.state.kind == LINK_READY
    assert len(link_provider.token_calls) == 1
    assert navigator.calls == 0


def test_scenario_d_transport_failure_then_retry(identity_service, link_provider, navigator, sign_in_fields):
    identity_service.errors = [IdentityServiceError("unavailable", "We couldn't reach the service. Please try again.")]
    session = _session(FormMode.SIGN_IN, identity_service, link_provider, navigator)

    async def scenario():
        await session.submit(sign_in_fields)
        assert session.machine.state.kind == FAILED
        assert session.view()["submission"]["error"] == "We couldn't reach the service. Please try again."

        identity_service.gate = asyncio.Event()
        retry = asyncio.create_task(session.submit(sign_in_fields))
        await asyncio.sleep(0)
        assert session.machine.state.kind == SUBMITTING
        assert session.view()["submission"]["error"] is None
        identity_service.gate.set()
        await retry

    asyncio.run(scenario())
    assert session.machine.state.kind == SUCCEEDED


def test_scenario_e_link_token_failure_preserves_identity(identity_service, link_provider, navigator, sign_up_fields):
    link_provider.token_errors = [LinkProviderError("unavailable")]
    session = _session(FormMode.SIGN_UP, identity_service, link_provider, navigator)
    asyncio.run(session.submit(sign_up_fields))

    assert session.controller.state.kind == LINK_FAILED
    assert session.controller.identity == identity_service.identity

    asyncio.run(session.retry_link_token())
    assert session.controller.state.kind == LINK_READY
    # The sign-up form was not re-validated or re-sent
    assert len(identity_service.calls) == 1
