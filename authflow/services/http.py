import asyncio
import random
import time
from typing import Any, Dict, Optional, Type

import httpx

from authflow.errors import ServiceError
from authflow.observability.logging import log

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


async def _sleep_backoff(attempt: int, retry_after: Optional[float] = None) -> None:
    """Small bounded exponential backoff with jitter."""
    if retry_after is not None:
        await asyncio.sleep(min(retry_after, 5.0))
        return
    base = min(2.0, 0.35 * (2 ** attempt))
    await asyncio.sleep(base + random.uniform(0.0, 0.2))


def _retry_after(resp: httpx.Response) -> Optional[float]:
    try:
        return float(resp.headers.get("retry-after"))
    except (TypeError, ValueError):
        return None


async def post_json(
    url: str,
    body: Dict[str, Any],
    *,
    op: str,
    error_cls: Type[ServiceError],
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 10.0,
    max_retries: int = 2,
    idempotent: bool = True,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.Response:
    """
    POST with retries on timeouts, transport errors and 429/5xx.
    A non-idempotent call is only retried when the request never left the client
    (connect errors); anything the server may have processed fails at once.
    Non-retryable responses are returned for the caller to map; exhausting the
    retries raises `error_cls("unavailable")`.
    """
    attempts = max(1, int(max_retries or 0))
    last_err = ""
    start = time.monotonic()

    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        for attempt in range(attempts):
            retry_after = None
            try:
                resp = await client.post(url, json=body, headers=headers)
            except httpx.HTTPError as e:
                last_err = f"{type(e).__name__}:{str(e)[:200]}"
                delivered = not isinstance(e, (httpx.ConnectError, httpx.ConnectTimeout))
            else:
                if resp.status_code not in RETRYABLE_STATUS:
                    log(
                        event="service_call_done",
                        op=op,
                        statusCode=int(resp.status_code),
                        attempt=attempt + 1,
                        elapsedMs=int((time.monotonic() - start) * 1000),
                    )
                    return resp
                last_err = f"status:{resp.status_code}"
                retry_after = _retry_after(resp)
                delivered = True

            if delivered and not idempotent:
                attempts = attempt + 1
                break

            log(event="service_call_retry", op=op, attempt=attempt + 1, error=last_err)
            if attempt + 1 < attempts:
                await _sleep_backoff(attempt, retry_after)

    log(
        event="service_call_unavailable",
        op=op,
        attempts=attempts,
        elapsedMs=int((time.monotonic() - start) * 1000),
        error=last_err,
    )
    raise error_cls(
        "unavailable",
        "We couldn't reach the service. Please try again.",
        detail=f"{op} failed after {attempts} attempt(s): {last_err}",
    )


def error_detail(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return (resp.text or "")[:300]
    if isinstance(data, dict):
        return str(data.get("message") or data.get("error_message") or data.get("error") or data)[:300]
    return str(data)[:300]
