import asyncio

from httpx import AsyncClient, HTTPError, Response

from app.core.exceptions import FetchTimeoutError, NetworkFailureError

DEFAULT_TIMEOUT_MS = 5000


async def fetch_with_timeout(
    url: str,
    *,
    timeout: int = DEFAULT_TIMEOUT_MS,
    client: AsyncClient | None = None,
    **kwargs,
) -> Response:
    """
    GET ``url`` and give up after ``timeout`` milliseconds.

    The deadline is armed for the lifetime of the request only and is always
    disarmed on exit, whether the request succeeded, failed or was cancelled.
    The response is returned as-is; status and body validation is left to the
    caller.
    """
    try:
        async with asyncio.timeout(timeout / 1000):
            if client is not None:
                return await client.get(url, **kwargs)
            # the deadline above is the only bound on the request
            async with AsyncClient(timeout=None) as owned_client:
                return await owned_client.get(url, **kwargs)
    except TimeoutError as e:
        raise FetchTimeoutError(url, timeout) from e
    except HTTPError as e:
        raise NetworkFailureError(f"Request to {url} failed: {e}") from e
