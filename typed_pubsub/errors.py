"""Exceptions raised by the typed pub/sub layer."""

from __future__ import annotations

from typing import Optional, Union


class PubSubError(Exception):
    """Base class for every error raised by typed_pubsub."""


class EncodeError(PubSubError):
    """The payload could not be serialized into an envelope."""

    def __init__(self, event: str, reason: str):
        self.event = event
        self.reason = reason
        super().__init__(f"Cannot encode payload for event '{event}': {reason}")


class DecodeError(PubSubError):
    """A wire message is not a structurally valid envelope."""

    def __init__(self, raw_message: Union[str, bytes], reason: str):
        self.raw_message = raw_message
        self.reason = reason
        super().__init__(f"Malformed envelope: {reason}")


class TransportError(PubSubError):
    """The underlying transport (or its factory) failed."""

    def __init__(self, operation: str, channel: Optional[str] = None, reason: str = ""):
        self.operation = operation
        self.channel = channel
        self.reason = reason
        where = f" on channel '{channel}'" if channel is not None else ""
        super().__init__(f"Transport {operation} failed{where}: {reason}")
