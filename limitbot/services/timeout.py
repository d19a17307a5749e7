from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from typing import Any, Callable, TypeVar

from limitbot.errors import TransientExternalError

T = TypeVar("T")


def call_with_timeout(func: Callable[..., T], timeout_seconds: float, *args: Any, **kwargs: Any) -> T:
    """
    Run `func` in a worker thread and raise TransientExternalError if it takes longer
    than `timeout_seconds`.

    The worker is not killed on timeout: it keeps running in the background and its
    result is discarded.
    """
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="limitbot-call")
    future = pool.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=timeout_seconds)
    except FuturesTimeoutError as exc:
        name = getattr(func, "__qualname__", repr(func))
        raise TransientExternalError(f"{name} timed out after {timeout_seconds}s") from exc
    finally:
        pool.shutdown(wait=False)
