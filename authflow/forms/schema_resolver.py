from typing import Optional, Union

from authflow.errors import SchemaRegistryError
from authflow.forms.field_registry import FieldRegistry, field_registry
from authflow.forms.models import FieldSchema, FormMode, ResolvedField


def coerce_mode(mode: Union[FormMode, str]) -> FormMode:
    """Accept the enum or its wire value ("sign-in" / "sign-up"); anything else fails fast."""
    if isinstance(mode, FormMode):
        return mode
    try:
        return FormMode(mode)
    except ValueError as e:
        raise SchemaRegistryError(f"unknown form mode: {mode!r}") from e


def resolve(mode: Union[FormMode, str], registry: Optional[FieldRegistry] = None) -> FieldSchema:
    """
    Mode -> ordered active fields, each carrying only the rules that apply in that mode.
    Pure and idempotent; cheap enough to call on every render.
    """
    mode = coerce_mode(mode)
    registry = registry or field_registry

    resolved = tuple(
        ResolvedField(
            definition=d,
            rules=tuple(rule for rule in d.rules if rule.applies_to(mode)),
        )
        for d in registry.for_mode(mode)
    )
    if not resolved:
        raise SchemaRegistryError(f"mode {mode.value} resolves to an empty schema")
    return FieldSchema(mode=mode, fields=resolved)
