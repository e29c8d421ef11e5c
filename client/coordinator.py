"""Single-slot refresh coordinator."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from .exceptions import ClientAuthError, ClientAuthErrorCodes

logger = logging.getLogger(__name__)

RefreshFn = Callable[[], Awaitable[str]]

DEFAULT_REFRESH_TIMEOUT = 10.0


class RefreshCoordinator:
    """
    Collapses concurrent token refreshes into one.

    The first caller starts the refresh; everyone arriving while it is in
    flight waits on the same slot and receives the same token, or the same
    error. The refresh itself runs as its own task so a cancelled caller
    cannot abort it for the others.

    Each settled refresh bumps ``generation``. A request that captured the
    generation before sending can ask ``failed_since`` whether a refresh
    has already failed under it, and fail with that error instead of
    starting another one.
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_REFRESH_TIMEOUT,
        on_reject: Callable[[Exception], None] | None = None,
    ) -> None:
        self._timeout = timeout_seconds
        self._on_reject = on_reject
        self._slot: asyncio.Future[str] | None = None
        self._task: asyncio.Task[None] | None = None
        self._last_error: Exception | None = None
        self.generation = 0
        self.waiting = 0

    @property
    def in_flight(self) -> bool:
        return self._slot is not None

    def failed_since(self, generation: int) -> Exception | None:
        """The error of the latest refresh, if it failed after ``generation``."""
        if self.generation != generation:
            return self._last_error
        return None

    async def await_or_start(self, refresh: RefreshFn) -> str:
        slot = self._slot
        if slot is None:
            slot = asyncio.get_running_loop().create_future()
            self._slot = slot
            self.waiting = 0
            self._task = asyncio.create_task(self._run(refresh))
        self.waiting += 1
        return await asyncio.shield(slot)

    async def _run(self, refresh: RefreshFn) -> None:
        try:
            token = await asyncio.wait_for(refresh(), self._timeout)
        except asyncio.TimeoutError as e:
            self.reject(
                ClientAuthError(
                    code=ClientAuthErrorCodes.REFRESH_TIMEOUT,
                    message=f"Token refresh timed out after {self._timeout}s",
                    cause=e,
                )
            )
        except asyncio.CancelledError as e:
            self.reject(
                ClientAuthError(
                    code=ClientAuthErrorCodes.REFRESH_FAILED,
                    message="Token refresh was cancelled",
                    cause=e,
                )
            )
            raise
        except ClientAuthError as e:
            self.reject(e)
        except Exception as e:
            self.reject(
                ClientAuthError(
                    code=ClientAuthErrorCodes.REFRESH_FAILED,
                    message=f"Token refresh failed: {e}",
                    cause=e,
                )
            )
        else:
            self.resolve(token)

    def resolve(self, token: str) -> None:
        slot, self._slot = self._slot, None
        if slot is not None and not slot.done():
            self.generation += 1
            self._last_error = None
            logger.info("token refresh succeeded; releasing %d waiting request(s)", self.waiting)
            slot.set_result(token)

    def reject(self, error: Exception) -> None:
        slot, self._slot = self._slot, None
        if slot is None or slot.done():
            return
        self.generation += 1
        self._last_error = error
        logger.warning("token refresh failed; failing %d waiting request(s): %s", self.waiting, error)
        if self._on_reject is not None:
            self._on_reject(error)
        slot.set_exception(error)
