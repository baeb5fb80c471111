from typing import Any, Callable, Dict, Optional
import httpx
from tenacity import AsyncRetrying, retry_if_result, stop_never, wait_fixed

def client(timeout_sec: float = 10, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout_sec, transport=transport)

def poll_policy(keep_polling: Callable[[Any], bool], interval_sec: float = 5, sleep=None) -> AsyncRetrying:
    # Retries on the result only; exceptions from the polled call propagate untouched.
    kwargs: Dict[str, Any] = {}
    if sleep is not None:
        kwargs["sleep"] = sleep
    return AsyncRetrying(
        stop=stop_never,
        wait=wait_fixed(interval_sec),
        retry=retry_if_result(keep_polling),
        reraise=True,
        **kwargs,
    )

def json_or_text(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return {"raw_text": resp.text or ""}
