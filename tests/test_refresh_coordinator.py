"""RefreshCoordinator unit tests."""

import asyncio

import pytest

from client.coordinator import DEFAULT_REFRESH_TIMEOUT, RefreshCoordinator
from client.exceptions import ClientAuthError, ClientAuthErrorCodes


class CountingRefresh:
    def __init__(self, token="A2", error=None, delay=0.01):
        self.calls = 0
        self.token = token
        self.error = error
        self.delay = delay

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.token


async def test_concurrent_callers_share_one_refresh() -> None:
    coordinator = RefreshCoordinator(timeout_seconds=1)
    refresh = CountingRefresh()

    results = await asyncio.gather(*(coordinator.await_or_start(refresh) for _ in range(8)))

    assert results == ["A2"] * 8
    assert refresh.calls == 1
    assert coordinator.in_flight is False


async def test_failure_reaches_every_waiter_and_resets_slot() -> None:
    rejected = []
    coordinator = RefreshCoordinator(timeout_seconds=1, on_reject=rejected.append)
    refresh = CountingRefresh(error=ClientAuthError(ClientAuthErrorCodes.REFRESH_FAILED, "nope"))

    results = await asyncio.gather(
        *(coordinator.await_or_start(refresh) for _ in range(5)), return_exceptions=True
    )

    assert all(isinstance(r, ClientAuthError) for r in results)
    assert refresh.calls == 1
    assert len(rejected) == 1
    assert coordinator.in_flight is False

    # the next expiry starts a fresh refresh
    assert await coordinator.await_or_start(CountingRefresh(token="A3")) == "A3"


async def test_unexpected_error_is_wrapped() -> None:
    coordinator = RefreshCoordinator(timeout_seconds=1)
    with pytest.raises(ClientAuthError) as exc_info:
        await coordinator.await_or_start(CountingRefresh(error=RuntimeError("boom")))
    assert exc_info.value.code == ClientAuthErrorCodes.REFRESH_FAILED
    assert isinstance(exc_info.value.__cause__, RuntimeError)


async def test_timeout_counts_as_failure() -> None:
    rejected = []
    coordinator = RefreshCoordinator(timeout_seconds=0.05, on_reject=rejected.append)
    refresh = CountingRefresh(delay=5)

    results = await asyncio.gather(
        *(coordinator.await_or_start(refresh) for _ in range(3)), return_exceptions=True
    )

    assert all(isinstance(r, ClientAuthError) for r in results)
    assert {r.code for r in results} == {ClientAuthErrorCodes.REFRESH_TIMEOUT}
    assert len(rejected) == 1


async def test_cancelled_waiter_does_not_cancel_refresh() -> None:
    coordinator = RefreshCoordinator(timeout_seconds=1)
    refresh = CountingRefresh(delay=0.05)

    first = asyncio.create_task(coordinator.await_or_start(refresh))
    second = asyncio.create_task(coordinator.await_or_start(refresh))
    await asyncio.sleep(0)
    first.cancel()

    assert await second == "A2"
    assert refresh.calls == 1


async def test_failure_is_remembered_for_earlier_generations() -> None:
    coordinator = RefreshCoordinator(timeout_seconds=1)
    before = coordinator.generation

    with pytest.raises(ClientAuthError):
        await coordinator.await_or_start(CountingRefresh(error=RuntimeError("boom")))

    failure = coordinator.failed_since(before)
    assert isinstance(failure, ClientAuthError)
    assert failure.code == ClientAuthErrorCodes.REFRESH_FAILED
    assert coordinator.failed_since(coordinator.generation) is None

    # a later success clears it
    after_failure = coordinator.generation
    assert await coordinator.await_or_start(CountingRefresh()) == "A2"
    assert coordinator.failed_since(after_failure) is None


async def test_cancelled_refresh_settles_waiters() -> None:
    rejected = []
    coordinator = RefreshCoordinator(timeout_seconds=1, on_reject=rejected.append)
    refresh = CountingRefresh(delay=5)

    waiter = asyncio.create_task(coordinator.await_or_start(refresh))
    await asyncio.sleep(0.01)
    coordinator._task.cancel()

    with pytest.raises(ClientAuthError) as exc_info:
        await asyncio.wait_for(waiter, 1)
    assert exc_info.value.code == ClientAuthErrorCodes.REFRESH_FAILED
    assert len(rejected) == 1
    assert coordinator.in_flight is False


def test_refresh_is_bounded_by_default() -> None:
    coordinator = RefreshCoordinator()
    assert coordinator._timeout == DEFAULT_REFRESH_TIMEOUT
    assert DEFAULT_REFRESH_TIMEOUT > 0
