"""Single-producer/single-consumer async streams and the request run context.

Every agent run hands back an ``EventStream`` fed by one worker task. The
consumer reads with ``await stream.next()`` (returning ``(item, has_more)``) or
``async for``. The worker always closes the stream, whichever way it ends.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, AsyncIterator, Coroutine, Generic, List, Optional, Set, Tuple, TypeVar

if TYPE_CHECKING:
    from researchAgent.schema import AgentEvent, Message

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_EOF = object()


class _StreamError:
    __slots__ = ("error",)

    def __init__(self, error: BaseException):
        self.error = error


class AsyncStream(Generic[T]):
    """Unbounded ordered channel with an explicit close.

    ``send`` never blocks, so a producer is never held up by a slow consumer.
    ``send_error`` queues an error terminal: the read that reaches it raises.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._exhausted = False
        # Final messages of the run, set by the producer before closing
        self.result: Optional[List["Message"]] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, item: T) -> None:
        if self._closed:
            raise RuntimeError("send on a closed stream")
        self._queue.put_nowait(item)

    def send_error(self, error: BaseException) -> None:
        if self._closed:
            raise RuntimeError("send_error on a closed stream")
        self._queue.put_nowait(_StreamError(error))

    def close(self) -> None:
        """Signal end of stream. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_EOF)

    async def next(self) -> Tuple[Optional[T], bool]:
        """Wait for the next item.

        Returns:
            ``(item, True)`` while items remain, ``(None, False)`` once closed

        Raises:
            BaseException: The error queued with ``send_error``
        """
        if self._exhausted:
            return None, False
        item = await self._queue.get()
        if item is _EOF:
            self._exhausted = True
            return None, False
        if isinstance(item, _StreamError):
            raise item.error
        return item, True

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        item, has_more = await self.next()
        if not has_more:
            raise StopAsyncIteration
        return item

    async def collect(self) -> List[T]:
        return [item async for item in self]


class EventStream(AsyncStream["AgentEvent"]):
    """Stream of AgentEvents produced by one agent run."""


class MessageStream(AsyncStream["Message"]):
    """Stream of message chunks for one streamed model turn."""


class RunContext:
    """Request-scoped run settings and cancellation for a whole agent tree."""

    def __init__(self, enable_streaming: bool = True, thread_id: Optional[str] = None):
        self.enable_streaming = enable_streaming
        self.thread_id = thread_id
        self._tasks: Set[asyncio.Task] = set()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def spawn(self, producer: Coroutine[Any, Any, None], stream: AsyncStream, name: str = None) -> Optional[asyncio.Task]:
        """Run ``producer`` as a worker task that owns ``stream``.

        The stream is closed when the task finishes, fails or is cancelled,
        including cancellation before the task ever started.
        """
        if self._cancelled:
            producer.close()
            stream.close()
            return None

        async def _worker():
            try:
                await producer
            except asyncio.CancelledError:
                LOGGER.debug(f"Worker {name or '?'} cancelled")
                raise
            except Exception as e:
                LOGGER.exception(f"Worker {name or '?'} failed", exc_info=e)
                if not stream.closed:
                    stream.send_error(e)
            finally:
                stream.close()

        task = asyncio.get_running_loop().create_task(_worker(), name=name)
        self._tasks.add(task)

        def _on_done(t: asyncio.Task):
            self._tasks.discard(t)
            stream.close()

        task.add_done_callback(_on_done)
        return task

    def cancel(self) -> None:
        """Cancel every worker spawned under this context."""
        if self._cancelled:
            return
        self._cancelled = True
        pending = [t for t in self._tasks if not t.done()]
        if pending:
            LOGGER.info(f"Cancelling {len(pending)} agent worker(s)")
        for task in pending:
            task.cancel()


__all__ = ["AsyncStream", "EventStream", "MessageStream", "RunContext"]
