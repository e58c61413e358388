import asyncio


class CancelSignal:
    """A one-shot signal that callers set to stop an in-flight poll.

    ``sleep`` is the poller's only suspension point: it yields to the event
    loop and wakes as soon as the signal is set, so a waiting poll notices
    cancellation without finishing its current backoff interval.
    """

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def sleep(self, seconds: float) -> bool:
        """Waits up to ``seconds``; returns True if cancelled meanwhile"""
        if self.cancelled:
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True
