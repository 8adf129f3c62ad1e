"""
Typed Pub/Sub — Event multiplexing over an untyped channel transport.

Many event kinds share one transport channel. Every message is wrapped in an
envelope tagged with its event kind; each subscription installs a dispatch
adapter that only forwards envelopes of its own kind. Registrations are
reference-counted per channel so the transport subscription is torn down only
once the last event kind on the channel is unsubscribed.

Usage:
    from typed_pubsub import EventKind, wrap_pubsub

    USER_LOGIN = EventKind[dict]("userLogin")

    pubsub = wrap_pubsub(redis_adapter)
    await pubsub.subscribe("auth", USER_LOGIN, on_login)
    await pubsub.publish("auth", USER_LOGIN, {"userId": "u1"})
    await pubsub.unsubscribe("auth", USER_LOGIN)
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

from typed_pubsub.config import Settings, get_settings
from typed_pubsub.envelope import EventKind, decode_envelope, encode_envelope
from typed_pubsub.errors import DecodeError, TransportError
from typed_pubsub.registry import ChannelRegistry, Registration
from typed_pubsub.structured_logging import dispatch_context, multiplexer_log as log
from typed_pubsub.transport import RawHandler, TransportSource, resolve_transport

P = TypeVar("P")

Handler = Callable[[P], Any]
PayloadValidator = Callable[[str, Any], Any]


class TypedPubSub:
    """
    Typed facade over a pub/sub transport.

    Features:
    - Envelope tagging so several event kinds share one channel
    - One transport subscription per subscribe call, filtered by event kind
    - Reference-counted teardown of channel subscriptions
    - Malformed messages logged and dropped, never raised into the transport
    - Optional payload validation hook
    """

    def __init__(
        self,
        transport: TransportSource,
        *,
        payload_validator: Optional[PayloadValidator] = None,
        settings: Optional[Settings] = None,
    ):
        self._transport = transport
        self._validator = payload_validator
        self._settings = settings or get_settings()
        self._registry = ChannelRegistry()
        self._stats = {
            "published": 0,
            "subscribed": 0,
            "unsubscribed": 0,
            "delivered": 0,
            "dropped": 0,
            "decode_errors": 0,
            "validation_errors": 0,
            "handler_errors": 0,
        }

    async def publish(self, channel: str, event: Union[EventKind[P], str], payload: P) -> None:
        """Publish ``payload`` tagged as ``event`` on ``channel``."""
        client = await resolve_transport(self._transport)
        message = encode_envelope(event, payload)
        try:
            await client.publish(channel, message)
        except Exception as e:
            raise TransportError("publish", channel, str(e)) from e
        self._stats["published"] += 1
        log.debug(f"Published '{event}' on '{channel}'")

    async def subscribe(
        self,
        channel: str,
        event: Union[EventKind[P], str],
        handler: Handler[P],
    ) -> Registration:
        """Call ``handler(payload)`` for every ``event`` envelope on ``channel``."""
        client = await resolve_transport(self._transport)
        registration = Registration(channel=channel, event=str(event), handler=handler)

        # Recorded before the transport call suspends; rolled back if it fails
        self._registry.add(registration)
        try:
            await client.subscribe(channel, self._make_dispatcher(registration))
        except Exception as e:
            self._registry.discard(registration)
            raise TransportError("subscribe", channel, str(e)) from e

        self._stats["subscribed"] += 1
        log.info(
            f"Subscribed '{registration.event}' on '{channel}'",
            data={"registration_id": registration.registration_id},
        )
        return registration

    async def unsubscribe(self, channel: str, event: Union[EventKind[P], str]) -> bool:
        """Drop one registration of ``event`` on ``channel``.

        The transport subscription is released only when this drains the
        channel. Unknown channels and event kinds are a no-op. Returns True
        if a registration was removed.
        """
        client = await resolve_transport(self._transport)

        # No await between the registry edit and the transport call
        registration, drained = self._registry.remove(channel, str(event))
        if registration is None:
            log.debug(f"Nothing to unsubscribe for '{event}' on '{channel}'")
            return False

        if not drained:
            self._stats["unsubscribed"] += 1
            log.info(
                f"Unsubscribed '{registration.event}' on '{channel}'; channel still in use",
                data={"remaining": self._registry.event_kinds(channel)},
            )
            return True

        try:
            await client.unsubscribe(channel)
        except Exception as e:
            # Put it back so a retry releases the channel
            self._registry.restore(registration)
            raise TransportError("unsubscribe", channel, str(e)) from e

        self._stats["unsubscribed"] += 1
        log.info(f"Unsubscribed '{registration.event}' on '{channel}'; channel released")
        return True

    def _make_dispatcher(self, registration: Registration) -> RawHandler:
        """Build the raw transport handler for one registration. It never raises."""

        def dispatch(message: str) -> None:
            with dispatch_context(
                registration.channel, registration.event, registration.registration_id
            ):
                self._dispatch(registration, message)

        return dispatch

    def _dispatch(self, registration: Registration, message: str) -> None:
        if not registration.active:
            self._stats["dropped"] += 1
            return

        try:
            envelope = decode_envelope(message)
        except DecodeError as e:
            self._stats["decode_errors"] += 1
            log.error(
                f"Error parsing message on '{registration.channel}': {e.reason}",
                data={"raw": self._preview(message)},
            )
            return

        if envelope.event != registration.event:
            self._stats["dropped"] += 1
            return

        payload = envelope.payload
        if self._validator is not None:
            try:
                payload = self._validator(envelope.event, payload)
            except Exception as e:
                self._stats["validation_errors"] += 1
                log.error(f"Payload rejected for '{envelope.event}': {e}")
                return

        try:
            registration.handler(payload)
        except Exception as e:
            self._stats["handler_errors"] += 1
            log.error(f"Handler error for '{envelope.event}': {e}", exc_info=True)
            return
        self._stats["delivered"] += 1

    def _preview(self, message: Any) -> str:
        if isinstance(message, (bytes, bytearray)):
            message = bytes(message).decode("utf-8", errors="replace")
        text = str(message)
        limit = self._settings.log_preview_chars
        if len(text) > limit:
            return text[:limit] + "..."
        return text

    def subscribed_channels(self) -> List[str]:
        """List channels that currently hold a transport subscription."""
        return self._registry.channels()

    def event_kinds(self, channel: str) -> List[str]:
        return self._registry.event_kinds(channel)

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self._stats,
            "channels": self._registry.status(),
            "total_registrations": len(self._registry),
        }


def wrap_pubsub(transport: TransportSource, **kwargs) -> TypedPubSub:
    """Wrap a transport (or a factory returning one) in a :class:`TypedPubSub`."""
    return TypedPubSub(transport, **kwargs)
