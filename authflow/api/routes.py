from fastapi import APIRouter, Depends

from authflow.api.auth import require_api_key
from authflow.api.schemas import (
    CompleteLinkRequest,
    CreateFormRequest,
    FieldDescriptor,
    FormView,
    SchemaView,
    SubmitRequest,
    SwitchModeRequest,
)
from authflow.core.form_session import FormSession
from authflow.forms.models import FormMode
from authflow.forms.schema_resolver import resolve
from authflow.store.form_repo import FormRepo, get_form_repo

router = APIRouter(dependencies=[Depends(require_api_key)])


def _view(session: FormSession) -> FormView:
    return FormView.model_validate(session.view())


@router.get("/schemas/{mode}", response_model=SchemaView)
async def get_schema(mode: FormMode):
    """Ordered field descriptors for a mode (what a front-end renders)."""
    schema = resolve(mode)
    return SchemaView(
        mode=schema.mode.value,
        fields=[
            FieldDescriptor(
                name=f.name,
                label=f.definition.label,
                placeholder=f.definition.placeholder,
                rules=[rule.key for rule in f.rules],
            )
            for f in schema
        ],
    )


@router.post("/forms", response_model=FormView, status_code=201)
async def create_form(body: CreateFormRequest, repo: FormRepo = Depends(get_form_repo)):
    return _view(repo.create(body.mode))


@router.get("/forms/{form_id}", response_model=FormView)
async def get_form(form_id: str, repo: FormRepo = Depends(get_form_repo)):
    return _view(repo.get(form_id))


@router.put("/forms/{form_id}/mode", response_model=FormView)
async def switch_mode(form_id: str, body: SwitchModeRequest, repo: FormRepo = Depends(get_form_repo)):
    session = repo.get(form_id)
    session.switch_mode(body.mode)
    return _view(session)


@router.post("/forms/{form_id}/submit", response_model=FormView)
async def submit_form(form_id: str, body: SubmitRequest, repo: FormRepo = Depends(get_form_repo)):
    """
    Validates and, when valid, awaits the identity call. A submit arriving while another
    is in flight returns the current (Submitting) view without a second call.
    """
    session = repo.get(form_id)
    await session.submit(body.fields)
    return _view(session)


@router.post("/forms/{form_id}/link-token/retry", response_model=FormView)
async def retry_link_token(form_id: str, repo: FormRepo = Depends(get_form_repo)):
    session = repo.get(form_id)
    await session.retry_link_token()
    return _view(session)


@router.post("/forms/{form_id}/link", response_model=FormView)
async def complete_link(form_id: str, body: CompleteLinkRequest, repo: FormRepo = Depends(get_form_repo)):
    session = repo.get(form_id)
    await session.complete_link(body.public_token)
    return _view(session)


@router.post("/forms/{form_id}/link/abandon", response_model=FormView)
async def abandon_link(form_id: str, repo: FormRepo = Depends(get_form_repo)):
    session = repo.get(form_id)
    session.abandon_link()
    return _view(session)
