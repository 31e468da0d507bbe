from typing import Awaitable, Callable, TypeVar

from utils.errors import PortalError

T = TypeVar("T")


async def optimistic_update(
    apply: Callable[[], None],
    commit: Callable[[], Awaitable[T]],
    reload: Callable[[], Awaitable[None]],
) -> T:
    """
    Apply a local change, then issue the request.

    If the request fails the local change is thrown away by reloading the
    authoritative state, and the error is re-raised for the caller to show.
    """
    apply()
    try:
        return await commit()
    except PortalError:
        await reload()
        raise
