"""
An unbuffered channel for asyncio tasks.

`asyncio.Queue` always buffers at least one item, which would let a sender
run ahead of its consumers. `Channel` instead hands each item directly from
a sender to a receiver: `send` only returns once a receiver has taken the
item. This couples the pace of every pipeline stage to the next one.
"""

import asyncio
import logging
from collections import deque
from typing import AsyncIterator, Deque, Generic, Tuple, TypeVar

from bucket_copier.exceptions import ChannelClosedError

logger: logging.Logger = logging.getLogger(__name__)

T = TypeVar("T")


class Channel(Generic[T]):
    """
    A rendezvous channel with explicit close semantics.

    Closing the channel is a one-way signal from the sending side that no
    more items will arrive. Only the sending side may close it, and only
    once. After that, receivers see `ChannelClosedError` (or the end of an
    `async for` loop).

    `delivered` counts items at the moment a receiver takes them, so it
    stays exact even when a sender is cancelled before it resumes. An item
    whose receiver is cancelled after taking it is kept for the next
    receiver and is not counted twice.
    """

    def __init__(self, name: str = "channel") -> None:
        """
        Initialize an open, empty channel.

        Args:
            name (str): Label used in log and error messages.
        """
        self.name: str = name
        self._closed: bool = False
        self._receivers: Deque[asyncio.Future[T]] = deque()
        self._senders: Deque[Tuple[T, asyncio.Future[None]]] = deque()
        self._returned: Deque[T] = deque()
        self.delivered: int = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, item: T) -> None:
        """
        Hands an item to a receiver, waiting until one takes it.

        Args:
            item (T): The item to deliver.

        Raises:
            ChannelClosedError: If the channel is, or becomes, closed before
                the item was taken.
        """
        if self._closed:
            raise ChannelClosedError(f"Send on closed channel '{self.name}'.")

        while self._receivers:
            receiver: asyncio.Future[T] = self._receivers.popleft()
            if not receiver.done():
                receiver.set_result(item)
                self.delivered += 1
                return

        handoff: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        entry: Tuple[T, asyncio.Future[None]] = (item, handoff)
        self._senders.append(entry)
        try:
            await handoff
        except asyncio.CancelledError:
            self._discard(self._senders, entry)
            raise

    async def receive(self) -> T:
        """
        Takes the next item, waiting for a sender if none is pending.

        Returns:
            T: The received item.

        Raises:
            ChannelClosedError: If the channel is closed and drained.
        """
        if self._returned:
            return self._returned.popleft()

        while self._senders:
            item, handoff = self._senders.popleft()
            if not handoff.done():
                handoff.set_result(None)
                self.delivered += 1
                return item

        if self._closed:
            raise ChannelClosedError(f"Channel '{self.name}' is closed.")

        receiver: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._receivers.append(receiver)
        try:
            return await receiver
        except asyncio.CancelledError:
            self._discard(self._receivers, receiver)
            if (
                receiver.done()
                and not receiver.cancelled()
                and receiver.exception() is None
            ):
                # Taken on this receiver's behalf before the cancellation landed.
                self._redeliver(receiver.result())
            raise

    def _redeliver(self, item: T) -> None:
        while self._receivers:
            receiver: asyncio.Future[T] = self._receivers.popleft()
            if not receiver.done():
                receiver.set_result(item)
                return
        self._returned.append(item)

    def close(self) -> None:
        """
        Closes the channel and wakes every blocked receiver.

        Raises:
            ChannelClosedError: If the channel was already closed.
        """
        if self._closed:
            raise ChannelClosedError(f"Channel '{self.name}' is already closed.")
        self._closed = True
        logger.debug(f"Channel '{self.name}' closed.")

        while self._receivers:
            receiver: asyncio.Future[T] = self._receivers.popleft()
            if not receiver.done():
                receiver.set_exception(
                    ChannelClosedError(f"Channel '{self.name}' is closed.")
                )
        # Only the sending side closes, so any sender left here raced the close.
        while self._senders:
            _, handoff = self._senders.popleft()
            if not handoff.done():
                handoff.set_exception(
                    ChannelClosedError(f"Send on closed channel '{self.name}'.")
                )

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        while True:
            try:
                item: T = await self.receive()
            except ChannelClosedError:
                return
            yield item

    @staticmethod
    def _discard(waiters: Deque, waiter: object) -> None:
        try:
            waiters.remove(waiter)
        except ValueError:
            pass
