from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Identity:
    id: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    display_name: str = ""

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Identity":
        """Accept the identity service's camelCase body; `$id`/`userId` aliases tolerated."""
        ident = data.get("id") or data.get("$id") or data.get("userId")
        if not ident:
            raise ValueError("identity payload has no id")
        first = str(data.get("firstName") or "")
        last = str(data.get("lastName") or "")
        email = str(data.get("email") or "")
        name = str(data.get("name") or data.get("displayName") or "").strip()
        return cls(
            id=str(ident),
            email=email,
            first_name=first,
            last_name=last,
            display_name=name or f"{first} {last}".strip() or email,
        )


@dataclass(frozen=True)
class LinkToken:
    value: str
    identity_id: str
    expiration: Optional[str] = None
