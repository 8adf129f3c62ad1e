"""
Channel Registry — Tracks which event kinds are registered on each channel.

The multiplexer uses the registry to:
* Decide when the transport subscription of a channel can be torn down.
* Deactivate individual registrations on unsubscribe.
* Enumerate active channels for stats / admin views.

A channel is present exactly while the transport holds a subscription for it.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from typed_pubsub.structured_logging import Subsystem, generate_registration_id, get_subsystem_logger

log = get_subsystem_logger(Subsystem.REGISTRY)


@dataclass
class Registration:
    """One subscribe call: a handler for one event kind on one channel."""
    channel: str
    event: str
    handler: Callable[[Any], Any]
    registration_id: str = field(default_factory=generate_registration_id)
    active: bool = True
    created_at: float = field(default_factory=time.time)


class ChannelRegistry:
    """Per-wrapper registry of channel -> ordered registrations."""

    def __init__(self):
        self._channels: Dict[str, List[Registration]] = {}

    def add(self, registration: Registration) -> bool:
        """Record a registration. Returns True if the channel was not active before."""
        entries = self._channels.get(registration.channel)
        created = entries is None
        if created:
            entries = self._channels[registration.channel] = []
            log.info(f"[REGISTRY] Channel active: {registration.channel}")
        entries.append(registration)
        log.debug(
            f"[REGISTRY] Registered {registration.event} on {registration.channel} "
            f"({len(entries)} entries)"
        )
        return created

    def remove(self, channel: str, event: str) -> Tuple[Optional[Registration], bool]:
        """Remove the oldest registration of ``event`` on ``channel``.

        Returns ``(registration, drained)``; ``(None, False)`` when nothing
        matched. ``drained`` is True when the channel has no entries left and
        was dropped from the registry.
        """
        entries = self._channels.get(channel)
        if entries is None:
            return None, False

        for index, registration in enumerate(entries):
            if registration.event == event:
                break
        else:
            return None, False

        del entries[index]
        registration.active = False
        log.debug(f"[REGISTRY] Removed {event} from {channel} ({len(entries)} entries left)")

        if entries:
            return registration, False
        del self._channels[channel]
        log.info(f"[REGISTRY] Channel drained: {channel}")
        return registration, True

    def restore(self, registration: Registration) -> None:
        """Put back a registration removed by :meth:`remove`, ahead of the others."""
        registration.active = True
        self._channels.setdefault(registration.channel, []).insert(0, registration)
        log.warning(f"[REGISTRY] Restored {registration.event} on {registration.channel}")

    def discard(self, registration: Registration) -> bool:
        """Remove this exact registration, e.g. when its transport subscribe failed.

        Returns True if the channel was dropped as a result.
        """
        registration.active = False
        entries = self._channels.get(registration.channel)
        if entries is None or registration not in entries:
            return False
        entries.remove(registration)
        log.warning(f"[REGISTRY] Discarded {registration.event} on {registration.channel}")
        if entries:
            return False
        del self._channels[registration.channel]
        return True

    def has_channel(self, channel: str) -> bool:
        return channel in self._channels

    def channels(self) -> List[str]:
        """Return all channels with at least one registration."""
        return list(self._channels.keys())

    def event_kinds(self, channel: str) -> List[str]:
        """Return the event-kind multiset of a channel, in registration order."""
        return [r.event for r in self._channels.get(channel, ())]

    def registrations(self, channel: str) -> List[Registration]:
        return list(self._channels.get(channel, ()))

    def count(self, channel: str, event: Optional[str] = None) -> int:
        entries = self._channels.get(channel, ())
        if event is None:
            return len(entries)
        return sum(1 for r in entries if r.event == event)

    def clear(self) -> None:
        """Deactivate and forget every registration. Issues no transport calls."""
        for entries in self._channels.values():
            for registration in entries:
                registration.active = False
        self._channels.clear()

    def status(self) -> List[Dict]:
        """Return a summary per channel (for stats / admin views)."""
        return [
            {"channel": channel, "events": [r.event for r in entries]}
            for channel, entries in self._channels.items()
        ]

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._channels.values())
