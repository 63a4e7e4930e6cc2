from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from canvas.geometry import distance
from domain.models import Point

LOGGER = logging.getLogger("canvas.gestures")

LONG_PRESS_MS = 280.0
DRAG_THRESHOLD = 8.0


class TokenKind(str, Enum):
    PLAYER = "player"
    FOOTBALL = "football"


class GestureOutcome(str, Enum):
    NONE = "none"
    DRAG = "drag"
    MENU = "menu"
    CLICK = "click"


@dataclass
class DragIntent:
    target_id: str
    kind: TokenKind
    offset_x: float
    offset_y: float
    down: Point
    down_at: float
    deadline: Optional[float]


@dataclass
class ActiveDrag:
    target_id: str
    kind: TokenKind
    offset_x: float
    offset_y: float

    def position_for(self, pointer: Point) -> Point:
        return Point(x=pointer.x - self.offset_x, y=pointer.y - self.offset_y)


@dataclass(frozen=True)
class LongPress:
    target_id: str
    pointer: Point


class GestureDisambiguator:
    """Classifies a press on a token as drag, long-press menu or click.

    Times are in seconds. The long-press timer is modelled as a deadline that
    is checked by :meth:`poll` and on every subsequent pointer event, so the
    owner only has to call :meth:`poll` when its own timer fires.
    """

    def __init__(
        self,
        *,
        long_press_ms: float = LONG_PRESS_MS,
        drag_threshold: float = DRAG_THRESHOLD,
    ) -> None:
        self.long_press_s = long_press_ms / 1000.0
        self.drag_threshold = drag_threshold
        self._pending: Optional[DragIntent] = None
        self._drag: Optional[ActiveDrag] = None
        self._outcome = GestureOutcome.NONE
        self._suppress_click = False

    @property
    def pending(self) -> Optional[DragIntent]:
        return self._pending

    @property
    def active_drag(self) -> Optional[ActiveDrag]:
        return self._drag

    @property
    def outcome(self) -> GestureOutcome:
        return self._outcome

    @property
    def in_gesture(self) -> bool:
        return self._pending is not None or self._drag is not None

    def pointer_down(
        self,
        target_id: str,
        pointer: Point,
        token: Point,
        now: float,
        *,
        kind: TokenKind = TokenKind.PLAYER,
    ) -> None:
        deadline = now + self.long_press_s if kind == TokenKind.PLAYER else None
        self._pending = DragIntent(
            target_id=target_id,
            kind=kind,
            offset_x=pointer.x - token.x,
            offset_y=pointer.y - token.y,
            down=pointer,
            down_at=now,
            deadline=deadline,
        )
        self._drag = None
        self._outcome = GestureOutcome.NONE
        self._suppress_click = False

    def poll(self, now: float) -> Optional[LongPress]:
        """Fire the long-press if its deadline passed before any drag began."""

        intent = self._pending
        if intent is None or intent.deadline is None or self._drag is not None:
            return None
        if now < intent.deadline:
            return None
        self._pending = None
        self._outcome = GestureOutcome.MENU
        self._suppress_click = True
        LOGGER.debug("Long press on %s", intent.target_id)
        return LongPress(intent.target_id, intent.down)

    def pointer_move(self, pointer: Point, now: float) -> Optional[Point]:
        """Return the token position to apply, or ``None`` if nothing moves."""

        if self._drag is not None:
            return self._drag.position_for(pointer)
        intent = self._pending
        if intent is None:
            return None
        if self.poll(now) is not None:
            return None
        if distance(intent.down, pointer) <= self.drag_threshold:
            return None
        self._pending = None
        self._drag = ActiveDrag(intent.target_id, intent.kind, intent.offset_x, intent.offset_y)
        self._outcome = GestureOutcome.DRAG
        return self._drag.position_for(pointer)

    def pointer_up(self, now: float) -> GestureOutcome:
        if self._pending is not None:
            self.poll(now)
        if self._pending is not None:
            self._outcome = GestureOutcome.CLICK
        self._pending = None
        self._drag = None
        outcome = self._outcome
        self._outcome = GestureOutcome.NONE
        return outcome

    def consume_click(self) -> bool:
        """Whether a synthetic click following pointer-up should be handled."""

        if self._suppress_click:
            self._suppress_click = False
            return False
        return True

    def cancel(self) -> None:
        self._pending = None
        self._drag = None
        self._outcome = GestureOutcome.NONE
