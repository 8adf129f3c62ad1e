from typed_pubsub.envelope import Envelope, EventKind, decode_envelope, encode_envelope
from typed_pubsub.errors import DecodeError, EncodeError, PubSubError, TransportError
from typed_pubsub.registry import ChannelRegistry, Registration
from typed_pubsub.transport import (
    InMemoryTransport, RawHandler, Transport, TransportSource, resolve_transport
)
from typed_pubsub.wrapper import TypedPubSub, wrap_pubsub

__all__ = [
    "TypedPubSub",
    "wrap_pubsub",
    "EventKind",
    "Envelope",
    "encode_envelope",
    "decode_envelope",
    "ChannelRegistry",
    "Registration",
    "Transport",
    "TransportSource",
    "RawHandler",
    "InMemoryTransport",
    "resolve_transport",
    "PubSubError",
    "EncodeError",
    "DecodeError",
    "TransportError",
]
