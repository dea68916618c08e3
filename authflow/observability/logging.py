import json
import time
from authflow.settings import settings

# Credential and identity-number fields never reach stdout in clear text
SENSITIVE_KEYS = {
    "password", "ssn", "dateOfBirth", "email",
    "link_token", "public_token", "access_token", "responseText",
}

def _redact_value(v):
    if isinstance(v, str) and len(v) > 0:
        return f"[REDACTED:{len(v)}chars]"
    if isinstance(v, dict):
        return {k: _redact_value(val) for k, val in v.items()}
    return v

def _clean(fields: dict) -> dict:
    out = {}
    for k, v in fields.items():
        if k in SENSITIVE_KEYS:
            out[k] = _redact_value(v)
        elif isinstance(v, dict):
            out[k] = _clean(v)
        else:
            out[k] = v
    return out

def log(event: str, **fields):
    payload = {"ts": int(time.time()), "event": event}

    if settings.ENABLE_PII_REDACTION:
        payload.update(_clean(fields))
    else:
        payload.update(fields)

    print(json.dumps(payload, ensure_ascii=False, default=str))
