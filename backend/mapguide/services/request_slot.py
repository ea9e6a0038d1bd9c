"""
Debounced, cancelable request slot.

Each concern that talks to a slow collaborator (city resolution, POI fetch,
saved-places refresh, text search, address autofill) owns exactly one
DebouncedRequest. Scheduling a new request always cancels the previous task
first, so at most one request per concern is ever in flight. A generation
counter guards completions: a result is applied only if no newer request
was scheduled (or the slot cancelled) in the meantime.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from mapguide.core.logger import logs
from mapguide.models.poi_model import RequestState

T = TypeVar("T")


class DebouncedRequest(Generic[T]):

    def __init__(self, name: str, delay: float = 0.0):
        self.name = name
        self.delay = delay
        self.state = RequestState.IDLE
        self.generation = 0
        # How many times the collaborator call actually started
        self.issued = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def schedule(
        self,
        call: Callable[[], Awaitable[T]],
        on_success: Callable[[T], None],
        on_failure: Callable[[Exception], None],
    ) -> int:
        """
        Cancel whatever is pending, then run ``call`` after the debounce delay.
        Must be called from inside the running event loop.
        """
        self.cancel()
        self.generation += 1
        generation = self.generation
        self.state = RequestState.RESOLVING
        self._task = asyncio.get_running_loop().create_task(
            self._run(generation, call, on_success, on_failure),
            name=f"{self.name}-{generation}",
        )
        return generation

    def cancel(self) -> bool:
        """Supersede the pending request, if any. Never reported as an error."""
        self.generation += 1
        task, self._task = self._task, None
        if task is None or task.done():
            return False
        task.cancel()
        self.state = RequestState.CANCELED
        logs.log(logging.DEBUG, f"{self.name}: request canceled")
        return True

    def reset(self):
        self.cancel()
        self.state = RequestState.IDLE

    async def wait(self):
        """Wait for the pending request (if any) to finish, however it ends."""
        task = self._task
        if task is not None:
            await asyncio.wait([task])

    async def _run(self, generation, call, on_success, on_failure):
        try:
            if self.delay > 0:
                await asyncio.sleep(self.delay)
            self.issued += 1
            result = await call()
        except Exception as e:
            if not self.is_current(generation):
                return
            self.state = RequestState.FAILED
            logs.log(logging.WARNING, f"{self.name}: request failed: {e}")
            on_failure(e)
            return

        if not self.is_current(generation):
            return
        self.state = RequestState.RESOLVED
        try:
            on_success(result)
        except Exception as e:
            self.state = RequestState.FAILED
            logs.log(logging.ERROR, f"{self.name}: could not apply result: {e}")
            on_failure(e)
