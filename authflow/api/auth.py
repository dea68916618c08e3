import hmac

from fastapi import Header, HTTPException
from authflow.settings import settings


def require_api_key(x_api_key: str = Header(default="", alias="x-api-key")):
    """
    Optional shared-key guard for the form endpoints.
    Empty API_KEY leaves the API open (front-end served from the same origin).
    """
    expected = getattr(settings, "API_KEY", "")
    if not expected:
        return
    if not hmac.compare_digest(x_api_key.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Invalid API key")
