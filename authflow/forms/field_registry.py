from typing import Dict, Tuple

from authflow.errors import SchemaRegistryError
from authflow.forms import rules as r
from authflow.forms.models import FieldDefinition, FormMode

BOTH = frozenset({FormMode.SIGN_IN, FormMode.SIGN_UP})
SIGN_UP_ONLY = frozenset({FormMode.SIGN_UP})


class FieldRegistry:
    """
    Declaration-ordered table of every field any form mode can show.
    INVARIANT: lookup order == registration order; it drives rendered field order.
    """

    def __init__(self):
        self._fields: Dict[str, FieldDefinition] = {}

    def register(self, definition: FieldDefinition) -> None:
        if definition.name in self._fields:
            raise SchemaRegistryError(f"duplicate field: {definition.name}")
        if not definition.modes:
            raise SchemaRegistryError(f"field {definition.name} is active in no mode")
        self._fields[definition.name] = definition

    @property
    def fields(self) -> Tuple[FieldDefinition, ...]:
        return tuple(self._fields.values())

    def names(self) -> Tuple[str, ...]:
        return tuple(self._fields.keys())

    def get(self, name: str) -> FieldDefinition:
        return self._fields[name]

    def for_mode(self, mode: FormMode) -> Tuple[FieldDefinition, ...]:
        return tuple(f for f in self._fields.values() if mode in f.modes)


def _register_defaults(registry: FieldRegistry) -> None:
    # Profile fields (sign-up only)
    registry.register(FieldDefinition(
        name="firstName", label="First Name", placeholder="Enter your First Name",
        modes=SIGN_UP_ONLY, rules=(r.required(), r.min_length(3)),
    ))
    registry.register(FieldDefinition(
        name="lastName", label="Last Name", placeholder="Enter your Last Name",
        modes=SIGN_UP_ONLY, rules=(r.required(), r.min_length(3)),
    ))
    registry.register(FieldDefinition(
        name="address1", label="Specific Address", placeholder="Enter your specific address",
        modes=SIGN_UP_ONLY, rules=(r.required(), r.max_length(50)),
    ))
    registry.register(FieldDefinition(
        name="city", label="City", placeholder="Enter your city",
        modes=SIGN_UP_ONLY, rules=(r.required(), r.max_length(50)),
    ))
    registry.register(FieldDefinition(
        name="state", label="State", placeholder="Enter your state",
        modes=SIGN_UP_ONLY, rules=(r.required(), r.letters(2, "State")),
        normalize_fn=str.upper,
    ))
    registry.register(FieldDefinition(
        name="postalCode", label="Postal Code", placeholder="Example : 111011",
        modes=SIGN_UP_ONLY, rules=(r.required(), r.digits(3, 6, "Postal code")),
    ))
    registry.register(FieldDefinition(
        name="dateOfBirth", label="DOB", placeholder="YYYY-MM-DD",
        modes=SIGN_UP_ONLY, rules=(r.required(), r.past_iso_date()),
        secret=True,
    ))
    registry.register(FieldDefinition(
        name="ssn", label="SSN", placeholder="Example : 1234",
        modes=SIGN_UP_ONLY, rules=(r.required(), r.digits(4, 9, "SSN")),
        normalize_fn=r.digits_only, secret=True,
    ))
    # Credential fields (both modes)
    registry.register(FieldDefinition(
        name="email", label="Email", placeholder="Enter your email",
        modes=BOTH, rules=(r.required(), r.email_format()),
        normalize_fn=str.lower,
    ))
    registry.register(FieldDefinition(
        name="password", label="Password", placeholder="Enter your password",
        modes=BOTH,
        # Length policy applies when creating credentials, not when presenting them
        rules=(r.required(), r.password_length(modes=SIGN_UP_ONLY)),
        strip=False, secret=True,
    ))


field_registry = FieldRegistry()
_register_defaults(field_registry)
