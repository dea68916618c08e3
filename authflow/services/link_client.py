"""
Account-linking provider adapter (Plaid-style REST)
---------------------------------------------------
- POST /link/token/create            -> single-use, short-lived link token for one identity
- POST /item/public_token/exchange   -> hand-off of the widget's linked-account handle
"""
from typing import Dict, List, Optional

import httpx

from authflow.core.models import Identity, LinkToken
from authflow.errors import LinkProviderError
from authflow.observability.logging import log
from authflow.services.http import error_detail, post_json
from authflow.settings import settings


def _csv(raw: str) -> List[str]:
    return [x.strip() for x in (raw or "").split(",") if x.strip()]


class LinkClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        client_id: Optional[str] = None,
        secret: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.LINK_BASE_URL).rstrip("/")
        self.client_id = settings.LINK_CLIENT_ID if client_id is None else client_id
        self.secret = settings.LINK_SECRET if secret is None else secret
        self.timeout = float(timeout or settings.SERVICE_TIMEOUT_SEC)
        self.max_retries = int(max_retries if max_retries is not None else settings.SERVICE_MAX_RETRIES)
        self._transport = transport

    def _auth(self) -> Dict[str, str]:
        return {"client_id": self.client_id, "secret": self.secret}

    async def _post(self, path: str, body: dict, *, op: str) -> dict:
        resp = await post_json(
            f"{self.base_url}{path}",
            {**self._auth(), **body},
            op=op,
            error_cls=LinkProviderError,
            timeout=self.timeout,
            max_retries=self.max_retries,
            transport=self._transport,
        )
        if not (200 <= resp.status_code < 300):
            log(event="link_provider_rejected", op=op, statusCode=int(resp.status_code),
                responseText=error_detail(resp))
            raise LinkProviderError("rejected", status=resp.status_code, detail=error_detail(resp))
        try:
            data = resp.json()
        except ValueError as e:
            raise LinkProviderError("bad_response", status=resp.status_code, detail=str(e)) from e
        if not isinstance(data, dict):
            raise LinkProviderError("bad_response", status=resp.status_code, detail="non-object body")
        return data

    async def create_link_token(self, identity: Identity) -> LinkToken:
        body = {
            "user": {"client_user_id": identity.id},
            "client_name": identity.display_name or settings.LINK_CLIENT_NAME,
            "products": _csv(settings.LINK_PRODUCTS),
            "country_codes": _csv(settings.LINK_COUNTRY_CODES),
            "language": settings.LINK_LANGUAGE,
        }
        data = await self._post("/link/token/create", body, op="link.create_token")
        token = data.get("link_token")
        if not token:
            raise LinkProviderError("bad_response", detail="missing link_token")
        return LinkToken(value=str(token), identity_id=identity.id, expiration=data.get("expiration"))

    async def exchange_public_token(self, identity: Identity, public_token: str) -> str:
        data = await self._post(
            "/item/public_token/exchange",
            {"public_token": public_token},
            op="link.exchange_public_token",
        )
        item_id = str(data.get("item_id") or "")
        log(event="link_handle_exchanged", identityId=identity.id, itemId=item_id)
        return item_id
