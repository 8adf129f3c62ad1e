"""
Transport — the untyped pub/sub client the multiplexer sits on.

Any object with the three coroutine methods of :class:`Transport` works, e.g. a
thin adapter over ``redis.asyncio`` or the bundled :class:`InMemoryTransport`.

The multiplexer accepts either a handle or a zero-argument factory; factories
are invoked on every operation so the client can be built lazily::

    pubsub = wrap_pubsub(lambda: get_redis_adapter())
"""

from __future__ import annotations

import inspect
from typing import Awaitable, Callable, Dict, List, Protocol, Union, runtime_checkable

from typed_pubsub.errors import TransportError
from typed_pubsub.structured_logging import transport_log

RawHandler = Callable[[str], None]


@runtime_checkable
class Transport(Protocol):
    async def publish(self, channel: str, message: str) -> None: ...

    async def subscribe(self, channel: str, handler: RawHandler) -> None: ...

    async def unsubscribe(self, channel: str) -> None: ...


TransportFactory = Callable[[], Union[Transport, Awaitable[Transport]]]
TransportSource = Union[Transport, TransportFactory]


async def resolve_transport(source: TransportSource) -> Transport:
    """Return the transport handle for one operation.

    A handle is reused as-is. A factory is called every time; memoize it on
    the caller side if it must only run once.
    """
    if isinstance(source, Transport):
        return source
    if not callable(source):
        raise TypeError(f"Expected a transport or a transport factory, got {type(source).__name__}")

    try:
        client = source()
        if inspect.isawaitable(client):
            client = await client
    except Exception as e:
        raise TransportError("resolve", reason=str(e)) from e

    if not isinstance(client, Transport):
        raise TypeError(f"Transport factory returned {type(client).__name__}, not a transport")
    return client


class InMemoryTransport:
    """
    Loopback transport with per-channel handler lists.

    - publish hands the message to every handler of the channel, synchronously.
    - unsubscribe drops the whole channel, like Redis UNSUBSCRIBE.
    """

    def __init__(self):
        self._handlers: Dict[str, List[RawHandler]] = {}
        self._stats = {
            "published": 0,
            "delivered": 0,
        }

    async def publish(self, channel: str, message: str) -> None:
        self._stats["published"] += 1
        handlers = list(self._handlers.get(channel, ()))
        for handler in handlers:
            handler(message)
        self._stats["delivered"] += len(handlers)
        transport_log.debug(f"Delivered message on '{channel}' to {len(handlers)} handler(s)")

    async def subscribe(self, channel: str, handler: RawHandler) -> None:
        self._handlers.setdefault(channel, []).append(handler)
        transport_log.debug(f"Subscribed handler to '{channel}'")

    async def unsubscribe(self, channel: str) -> None:
        removed = self._handlers.pop(channel, [])
        transport_log.debug(f"Unsubscribed '{channel}' ({len(removed)} handler(s) removed)")

    def channels(self) -> List[str]:
        """List channels with at least one handler."""
        return list(self._handlers.keys())

    @property
    def channel_count(self) -> int:
        return len(self._handlers)

    @property
    def handler_count(self) -> int:
        return sum(len(h) for h in self._handlers.values())

    def get_stats(self) -> dict:
        return {
            **self._stats,
            "channels": self.channel_count,
            "handlers": self.handler_count,
        }
