from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field

Mode = Literal["sign-in", "sign-up"]

class CreateFormRequest(BaseModel):
    mode: Mode

class SwitchModeRequest(BaseModel):
    mode: Mode

class SubmitRequest(BaseModel):
    # Raw field values; keys outside the registry are dropped server-side
    fields: Dict[str, Optional[str]] = Field(default_factory=dict)

class CompleteLinkRequest(BaseModel):
    public_token: str = Field(min_length=1)

class FieldView(BaseModel):
    name: str
    label: str
    placeholder: str
    value: str = ""
    error: Optional[str] = None

class SubmissionView(BaseModel):
    state: Literal["Idle", "Submitting", "Succeeded", "Failed"]
    submit_label: str
    submit_disabled: bool
    loading: bool
    error: Optional[str] = None

class IdentityView(BaseModel):
    id: str
    display_name: str

class LinkView(BaseModel):
    state: str
    link_token: Optional[str] = None
    expiration: Optional[str] = None
    error: Optional[str] = None

class SwitchView(BaseModel):
    prompt: str
    label: str
    mode: Mode

class FormView(BaseModel):
    form_id: str
    mode: Mode
    phase: Literal["form", "link_account", "done"]
    title: str
    subtitle: str
    fields: List[FieldView] = Field(default_factory=list)
    submission: SubmissionView
    identity: Optional[IdentityView] = None
    link: Optional[LinkView] = None
    redirect: Optional[str] = None
    switch: SwitchView

class FieldDescriptor(BaseModel):
    name: str
    label: str
    placeholder: str
    rules: List[str] = Field(default_factory=list)

class SchemaView(BaseModel):
    mode: Mode
    fields: List[FieldDescriptor]
