from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from canvas.geometry import distance, simplify_points, turn_angle
from domain.models import DefensiveAction, Point, RouteStyle, RouteType

LOGGER = logging.getLogger("canvas.route_drawing")

TURN_ANGLE_THRESHOLD = 50.0
MIN_SEGMENT_LENGTH = 20.0
CURVE_SAMPLE_DISTANCE = 2.0
CURVED_SIMPLIFY_TOLERANCE = 5.0


class DrawState(str, Enum):
    IDLE = "idle"
    DRAWING = "drawing"


@dataclass
class PendingRouteSelection:
    """Route choice armed from the long-press menu, confirmed by hovering."""

    player_id: str
    route_type: RouteType
    style: Optional[RouteStyle] = None
    defensive_action: Optional[DefensiveAction] = None

    @property
    def armed(self) -> bool:
        return self.style is not None


@dataclass
class RouteDraft:
    player_id: str
    route_type: RouteType
    style: RouteStyle
    defensive_action: Optional[DefensiveAction] = None
    points: List[Point] = field(default_factory=list)


class RouteDrawingMachine:
    """Turns a stream of pointer samples into a clean route point list.

    Straight routes only gain a vertex where the path genuinely changes
    direction; curved routes are densely sampled and thinned on completion.
    """

    def __init__(
        self,
        *,
        turn_angle_threshold: float = TURN_ANGLE_THRESHOLD,
        min_segment_length: float = MIN_SEGMENT_LENGTH,
        sample_distance: float = CURVE_SAMPLE_DISTANCE,
        curved_tolerance: float = CURVED_SIMPLIFY_TOLERANCE,
    ) -> None:
        self.turn_angle_threshold = turn_angle_threshold
        self.min_segment_length = min_segment_length
        self.sample_distance = sample_distance
        self.curved_tolerance = curved_tolerance
        self._state = DrawState.IDLE
        self._player_id: Optional[str] = None
        self._route_type = RouteType.PASS
        self._style = RouteStyle.STRAIGHT
        self._action: Optional[DefensiveAction] = None
        self._vertices: List[Point] = []
        self._floating: Optional[Point] = None
        self.pending: Optional[PendingRouteSelection] = None

    @property
    def state(self) -> DrawState:
        return self._state

    @property
    def is_drawing(self) -> bool:
        return self._state == DrawState.DRAWING

    @property
    def player_id(self) -> Optional[str]:
        return self._player_id

    @property
    def style(self) -> RouteStyle:
        return self._style

    @property
    def route_type(self) -> RouteType:
        return self._route_type

    def begin(
        self,
        player_id: str,
        origin: Point,
        route_type: RouteType,
        style: RouteStyle,
        *,
        defensive_action: Optional[DefensiveAction] = None,
    ) -> None:
        self._state = DrawState.DRAWING
        self._player_id = player_id
        self._route_type = route_type
        self._style = RouteStyle.CURVED if style == RouteStyle.CURVED else RouteStyle.STRAIGHT
        self._action = defensive_action
        self._vertices = [origin]
        self._floating = None
        self.pending = None
        LOGGER.debug("Drawing %s %s route for %s", self._style.value, route_type.value, player_id)

    def extend(self, candidate: Point) -> None:
        if not self.is_drawing:
            return
        if self._style == RouteStyle.CURVED:
            if distance(self._vertices[-1], candidate) > self.sample_distance:
                self._vertices.append(candidate)
            return

        floating = self._floating
        if floating is None:
            self._floating = candidate
            return
        anchor = self._vertices[-1]
        segment = distance(anchor, candidate)
        angle = turn_angle(anchor, floating, candidate)
        if segment > self.min_segment_length and angle > self.turn_angle_threshold:
            self._vertices.append(floating)
        self._floating = candidate

    def preview(self) -> List[Point]:
        points = list(self._vertices)
        if self._floating is not None and (not points or points[-1] != self._floating):
            points.append(self._floating)
        return points

    def finish(self) -> Optional[RouteDraft]:
        """Complete the gesture; fewer than two points aborts without a route."""

        if not self.is_drawing or self._player_id is None:
            self.reset()
            return None
        points = self.preview()
        if self._style == RouteStyle.CURVED:
            points = simplify_points(points, self.curved_tolerance)
        draft: Optional[RouteDraft] = None
        if len(points) >= 2:
            draft = RouteDraft(
                player_id=self._player_id,
                route_type=self._route_type,
                style=self._style,
                defensive_action=self._action,
                points=points,
            )
        else:
            LOGGER.debug("Discarding route for %s with %d point(s)", self._player_id, len(points))
        self.reset()
        return draft

    def cancel(self) -> None:
        self.reset()
        self.pending = None

    def reset(self) -> None:
        self._state = DrawState.IDLE
        self._player_id = None
        self._action = None
        self._vertices = []
        self._floating = None

    # ------------------------------------------------------------------
    # Long-press menu two-step selection
    # ------------------------------------------------------------------
    def choose_type(
        self,
        player_id: str,
        route_type: RouteType,
        defensive_action: Optional[DefensiveAction] = None,
    ) -> PendingRouteSelection:
        self.pending = PendingRouteSelection(player_id, route_type, defensive_action=defensive_action)
        return self.pending

    def choose_style(self, style: RouteStyle) -> Optional[PendingRouteSelection]:
        if self.pending is None:
            return None
        self.pending.style = style
        return self.pending

    def pointer_enter(self, player_id: str, origin: Point) -> bool:
        """Activate an armed selection when the pointer enters its player."""

        pending = self.pending
        if pending is None or not pending.armed or pending.player_id != player_id:
            return False
        self.begin(
            player_id,
            origin,
            pending.route_type,
            pending.style or RouteStyle.STRAIGHT,
            defensive_action=pending.defensive_action,
        )
        return True
