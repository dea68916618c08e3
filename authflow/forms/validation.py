"""
Validation Engine
-----------------
`validate(record, schema)` evaluates only the active fields of `schema`, collects every
field error in one pass, and on success returns the record narrowed to the active fields.

`ValidatedForm` is the only payload type the service adapters accept. It can only be
built here, so an unvalidated record has no path to an external call.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from authflow.forms.field_registry import field_registry
from authflow.forms.models import FieldSchema, FormMode, ResolvedField

_ENGINE = object()


@dataclass(frozen=True)
class ValidatedForm:
    mode: FormMode
    data: Mapping[str, str]
    _issuer: object = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self._issuer is not _ENGINE:
            raise TypeError("ValidatedForm can only be produced by validate()")

    def __getitem__(self, name: str) -> str:
        return self.data[name]


@dataclass(frozen=True)
class Valid:
    form: ValidatedForm
    is_valid = True


@dataclass(frozen=True)
class Invalid:
    errors: Mapping[str, str]
    is_valid = False


ValidationOutcome = Union[Valid, Invalid]


def blank_record() -> Dict[str, str]:
    return {name: "" for name in field_registry.names()}


def make_record(data: Optional[Mapping[str, Any]] = None) -> Dict[str, str]:
    """
    Build a FormInputRecord: every registry field present, defaulting to "".
    Keys outside the registry are discarded.
    """
    record = blank_record()
    for k, v in (data or {}).items():
        if k not in record:
            continue
        record[k] = "" if v is None else (v if isinstance(v, str) else str(v))
    return record


def _first_error(f: ResolvedField, value: str) -> Optional[str]:
    for rule in f.rules:
        msg = rule.check_fn(value)
        if msg:
            return msg
    return None


def validate(record: Mapping[str, Any], schema: FieldSchema) -> ValidationOutcome:
    errors: Dict[str, str] = {}
    cleaned: Dict[str, str] = {}

    for f in schema:
        value = f.definition.clean(record.get(f.name))
        msg = _first_error(f, value)
        if msg:
            errors[f.name] = msg
        else:
            cleaned[f.name] = value

    if errors:
        return Invalid(errors=MappingProxyType(errors))
    return Valid(form=ValidatedForm(schema.mode, MappingProxyType(cleaned), _ENGINE))
