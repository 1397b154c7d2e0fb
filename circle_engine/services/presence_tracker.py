"""
Ephemeral presence and typing state per circle.

Nothing here is persisted: the maps start empty on every process start.
Typing entries expire after a fixed TTL; a periodic sweep removes them and
republishes the typing set only for circles whose set actually changed.
Changes are judged against the last typing set published for each circle.
"""

import logging
from datetime import timedelta
from typing import Dict, List

from circle_engine.events import EventBus, Topic
from circle_engine.scheduler import Clock

logger = logging.getLogger(__name__)

DEFAULT_TYPING_TTL = timedelta(seconds=5)


class PresenceTracker:
    """Tracks who is online and who is typing in each circle."""

    def __init__(
        self,
        event_bus: EventBus,
        clock: Clock,
        typing_ttl: timedelta = DEFAULT_TYPING_TTL,
    ):
        self._bus = event_bus
        self._clock = clock
        self._typing_ttl = typing_ttl
        # circleId -> {userId -> lastSeenAt}, insertion ordered
        self._typing: Dict[str, Dict] = {}
        self._online: Dict[str, Dict] = {}
        # circleId -> typing set subscribers last saw
        self._published_typing: Dict[str, List[str]] = {}

    # ─────────────────────────────────────────────────────────────
    # Typing
    # ─────────────────────────────────────────────────────────────

    def set_typing(self, circle_id: str, user_id: str, is_typing: bool) -> None:
        """
        Record or clear a typing signal.

        A repeated ``True`` only refreshes the timestamp; ``False`` removes
        the entry immediately. Subscribers are notified only when the
        typing set differs from the one they last received.
        """
        # Stale entries go first so re-typing moves the user to the end
        self._drop_stale(circle_id)
        entries = self._typing.setdefault(circle_id, {})

        if is_typing:
            entries[user_id] = self._clock.now()
        else:
            entries.pop(user_id, None)

        if not entries:
            self._typing.pop(circle_id, None)

        self._publish_if_changed(circle_id)

    def list_typing(self, circle_id: str) -> List[str]:
        """Users currently typing, in the order they started. Stale entries are excluded."""
        now = self._clock.now()
        return [
            user_id
            for user_id, seen_at in self._typing.get(circle_id, {}).items()
            if now - seen_at < self._typing_ttl
        ]

    def sweep_typing(self) -> List[str]:
        """
        Drop stale typing entries.

        Returns:
            Ids of the circles whose typing set changed (and was republished)
        """
        changed = []

        circle_ids = list(self._typing) + [
            circle_id for circle_id in self._published_typing
            if circle_id not in self._typing
        ]
        for circle_id in circle_ids:
            self._drop_stale(circle_id)
            if self._publish_if_changed(circle_id):
                changed.append(circle_id)

        if changed:
            logger.debug(f"Typing sweep updated {len(changed)} circle(s)")
        return changed

    # ─────────────────────────────────────────────────────────────
    # Online presence
    # ─────────────────────────────────────────────────────────────

    def set_online(self, circle_id: str, user_id: str, is_online: bool) -> None:
        entries = self._online.setdefault(circle_id, {})
        was_online = user_id in entries

        if is_online:
            entries[user_id] = self._clock.now()
        else:
            entries.pop(user_id, None)

        if not entries:
            self._online.pop(circle_id, None)

        if was_online != is_online:
            self._bus.publish(Topic.PRESENCE, {
                "circleId": circle_id,
                "onlineUsers": self.list_online(circle_id),
            })

    def list_online(self, circle_id: str) -> List[str]:
        return list(self._online.get(circle_id, {}))

    # ─────────────────────────────────────────────────────────────
    # Cleanup
    # ─────────────────────────────────────────────────────────────

    def forget_user(self, circle_id: str, user_id: str) -> None:
        """Remove a user from both maps, e.g. after leaving the circle."""
        self.set_typing(circle_id, user_id, False)
        self.set_online(circle_id, user_id, False)

    def clear_circle(self, circle_id: str) -> None:
        """Drop all state for a circle that no longer has members."""
        self._typing.pop(circle_id, None)
        self._publish_if_changed(circle_id)

        if self._online.pop(circle_id, None):
            self._bus.publish(Topic.PRESENCE, {
                "circleId": circle_id,
                "onlineUsers": [],
            })

    def _drop_stale(self, circle_id: str) -> None:
        entries = self._typing.get(circle_id)
        if not entries:
            return

        now = self._clock.now()
        for user_id in [u for u, seen_at in entries.items() if now - seen_at >= self._typing_ttl]:
            del entries[user_id]
        if not entries:
            del self._typing[circle_id]

    def _publish_if_changed(self, circle_id: str) -> bool:
        typing_users = self.list_typing(circle_id)
        if typing_users == self._published_typing.get(circle_id, []):
            return False

        if typing_users:
            self._published_typing[circle_id] = typing_users
        else:
            self._published_typing.pop(circle_id, None)

        self._bus.publish(Topic.TYPING, {
            "circleId": circle_id,
            "typingUsers": typing_users,
        })
        return True
