"""
Envelope Codec — tags every payload with its event kind.

Wire format is a compact JSON object with exactly two fields::

    {"event":"userLogin","payload":{"userId":"u1"}}

Several event kinds can therefore share one transport channel; receivers
decode the envelope and compare the ``event`` tag against the kind they
subscribed to.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from pydantic_core import PydanticSerializationError, to_jsonable_python

from typed_pubsub.errors import DecodeError, EncodeError

P = TypeVar("P")

_SEPARATORS = (",", ":")


class EventKind(str, Generic[P]):
    """An event-kind tag bound to the payload type ``P``.

    Behaves exactly like the plain string at runtime::

        USER_LOGIN = EventKind[UserLogin]("userLogin")
        assert USER_LOGIN == "userLogin"
    """

    __slots__ = ()


@dataclass
class Envelope(Generic[P]):
    """One tagged message, alive for a single publish/deliver cycle."""
    event: str
    payload: P = None

    def to_dict(self) -> dict:
        return {"event": self.event, "payload": self.payload}


def encode_envelope(event: str, payload: Any) -> str:
    """Serialize ``(event, payload)`` into a wire message."""
    try:
        return json.dumps(
            Envelope(event=str(event), payload=payload).to_dict(),
            separators=_SEPARATORS,
            ensure_ascii=False,
            default=to_jsonable_python,
        )
    except (TypeError, ValueError, PydanticSerializationError) as e:
        raise EncodeError(str(event), str(e)) from e


def decode_envelope(message: Union[str, bytes, bytearray]) -> Envelope:
    """Parse a wire message back into an :class:`Envelope`.

    Raises :class:`DecodeError` for anything that is not a JSON object with a
    string ``event`` field.
    """
    try:
        parsed = json.loads(message)
    except (TypeError, ValueError) as e:
        # JSONDecodeError and UnicodeDecodeError are both ValueErrors
        raise DecodeError(message, str(e)) from e

    if not isinstance(parsed, dict):
        raise DecodeError(message, f"expected a JSON object, got {type(parsed).__name__}")
    if "event" not in parsed:
        raise DecodeError(message, "missing 'event' field")
    event = parsed["event"]
    if not isinstance(event, str):
        raise DecodeError(message, f"'event' must be a string, got {type(event).__name__}")

    return Envelope(event=event, payload=parsed.get("payload"))
