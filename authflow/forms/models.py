from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, FrozenSet, Iterator, Optional, Tuple


class FormMode(str, Enum):
    SIGN_IN = "sign-in"
    SIGN_UP = "sign-up"


@dataclass(frozen=True)
class Rule:
    key: str
    # Returns an error message, or None when the value passes
    check_fn: Callable[[str], Optional[str]]
    # None means "every mode the field is active in"
    modes: Optional[FrozenSet[FormMode]] = None

    def applies_to(self, mode: FormMode) -> bool:
        return self.modes is None or mode in self.modes


@dataclass(frozen=True)
class FieldDefinition:
    name: str
    label: str
    placeholder: str
    modes: FrozenSet[FormMode]
    rules: Tuple[Rule, ...] = ()
    normalize_fn: Optional[Callable[[str], str]] = None
    # Passwords keep surrounding whitespace
    strip: bool = True
    # Never echoed back to a client once entered
    secret: bool = False

    def clean(self, raw: Optional[str]) -> str:
        value = raw if isinstance(raw, str) else ("" if raw is None else str(raw))
        if self.strip:
            value = value.strip()
        if self.normalize_fn and value:
            value = self.normalize_fn(value)
        return value


@dataclass(frozen=True)
class ResolvedField:
    definition: FieldDefinition
    rules: Tuple[Rule, ...]

    @property
    def name(self) -> str:
        return self.definition.name


@dataclass(frozen=True)
class FieldSchema:
    mode: FormMode
    fields: Tuple[ResolvedField, ...] = field(default_factory=tuple)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def __iter__(self) -> Iterator[ResolvedField]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __contains__(self, name: object) -> bool:
        return name in self.names
