from __future__ import annotations

import logging
import math
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from canvas import events
from canvas.events import EventBus
from canvas.generation import GenerationRequest, PlayGenerationClient, normalize_generated_play
from canvas.gestures import GestureDisambiguator, GestureOutcome, TokenKind
from canvas.geometry import distance, translate_points
from canvas.render import DraftPreview, RenderModel, build_render_model
from canvas.route_drawing import RouteDraft, RouteDrawingMachine
from canvas.shapes import (
    DEFAULT_ZONE_HEIGHT,
    DEFAULT_ZONE_WIDTH,
    ShapeDrag,
    ShapeResize,
    begin_drag,
    contains,
    drag_shape,
    fit_shape,
    hit_handle,
    resize_shape,
    shape_from_corners,
)
from canvas.tabs import CanvasSnapshot, PlayTypeState, TabStore
from domain import play_data as play_blob
from domain.errors import PlayGenerationError
from domain.football_config import (
    CENTER_X,
    DEFAULT_COLOR,
    DEFENSE_COLORS,
    LOS_Y,
    PLAYER_SIZE,
    QB_Y,
    ROUTE_COLORS,
    SHAPE_COLORS,
    DefenseRole,
    RouteColor,
    ShapeColor,
    color_for_label,
    field_bounds,
    get_formation,
    label_for_color,
    los_y,
    player_bounds,
    snap_position,
)
from domain.models import (
    DefensiveAction,
    Football,
    PlayData,
    PlayMetadata,
    PlayTab,
    Player,
    Point,
    Route,
    RouteStyle,
    RouteType,
    Shape,
    ShapeType,
    Side,
    ToolMode,
)
from domain.settings import DesignerSettings

LOGGER = logging.getLogger("canvas.engine")

PLAYER_HIT_RADIUS = PLAYER_SIZE + 4
FOOTBALL_HIT_RADIUS = 12.0
ROUTE_HIT_DISTANCE = 6.0
MENU_OFFSET = PLAYER_SIZE + 8


class MenuStep(str, Enum):
    ROUTE_TYPE = "route-type"
    ROUTE_STYLE = "route-style"


@dataclass
class ContextMenu:
    """Long-press menu anchored under a player token."""

    player_id: str
    anchor: Point
    side: Side
    step: MenuStep = MenuStep.ROUTE_TYPE
    route_type: Optional[RouteType] = None


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}"


def _segment_distance(point: Point, a: Point, b: Point) -> float:
    dx, dy = b.x - a.x, b.y - a.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return distance(point, a)
    t = max(0.0, min(1.0, ((point.x - a.x) * dx + (point.y - a.y) * dy) / length_sq))
    return math.hypot(point.x - (a.x + t * dx), point.y - (a.y + t * dy))


class PlayDesigner:
    """Interaction engine behind the play designer canvas.

    Owns the active tab's entities and every piece of transient interaction
    state (tool mode, selection, gesture and route drawing machines, context
    menu, generation busy flag). All methods run synchronously on the caller's
    thread; pointer handlers take an optional ``now`` in seconds so the
    long-press timer can be driven deterministically.
    """

    def __init__(
        self,
        settings: Optional[DesignerSettings] = None,
        *,
        bus: Optional[EventBus] = None,
        tab: PlayTab = PlayTab.OFFENSE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or DesignerSettings()
        self.bus = bus or EventBus()
        self._clock = clock
        self.tab = tab
        self.tabs = TabStore()
        self.state: PlayTypeState = self.tabs.load(tab)

        self.tool = ToolMode.SELECT
        self.route_type = RouteType.PASS
        self.route_style = RouteStyle.STRAIGHT
        self.motion = False
        self.show_blocking = True
        self.snap_enabled = self.settings.snap_enabled
        self.shape_type = ShapeType.OVAL
        self.shape_color = SHAPE_COLORS[ShapeColor.BLUE]

        self.selected_player_id: Optional[str] = None
        self.selected_route_id: Optional[str] = None
        self.selected_shape_id: Optional[str] = None
        self.menu: Optional[ContextMenu] = None
        self.busy = False
        self._generation_checkpoint = False

        self.gestures = GestureDisambiguator(
            long_press_ms=self.settings.long_press_ms,
            drag_threshold=self.settings.drag_threshold,
        )
        self.drawing = RouteDrawingMachine(
            turn_angle_threshold=self.settings.turn_angle_threshold,
            min_segment_length=self.settings.min_segment_length,
            sample_distance=self.settings.curve_sample_distance,
            curved_tolerance=self.settings.curved_simplify_tolerance,
        )
        self._shape_drag: Optional[ShapeDrag] = None
        self._shape_resize: Optional[ShapeResize] = None
        self._shape_moved = False
        self._shape_origin: Optional[Point] = None
        self._shape_end: Optional[Point] = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def players(self) -> List[Player]:
        return self.state.players

    @property
    def routes(self) -> List[Route]:
        return self.state.routes

    @property
    def shapes(self) -> List[Shape]:
        return self.state.shapes

    @property
    def footballs(self) -> List[Football]:
        return self.state.footballs

    @property
    def metadata(self) -> PlayMetadata:
        return self.state.metadata

    @property
    def play_action_football_id(self) -> Optional[str]:
        return self.state.play_action_football_id

    def player(self, player_id: Optional[str]) -> Optional[Player]:
        return next((p for p in self.state.players if p.id == player_id), None)

    def route(self, route_id: Optional[str]) -> Optional[Route]:
        return next((r for r in self.state.routes if r.id == route_id), None)

    def shape(self, shape_id: Optional[str]) -> Optional[Shape]:
        return next((s for s in self.state.shapes if s.id == shape_id), None)

    def football(self, football_id: Optional[str]) -> Optional[Football]:
        return next((f for f in self.state.footballs if f.id == football_id), None)

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now

    def _checkpoint(self) -> None:
        self.state.push_history(self.settings.history_limit)

    def _clear_selection(self) -> None:
        self.selected_player_id = None
        self.selected_route_id = None
        self.selected_shape_id = None

    def _reset_interaction(self) -> None:
        self.gestures.cancel()
        self.drawing.cancel()
        self._shape_drag = None
        self._shape_resize = None
        self._shape_origin = None
        self._shape_end = None
        self.close_menu()

    # ------------------------------------------------------------------
    # Tools and settings
    # ------------------------------------------------------------------
    def set_tool(self, tool: ToolMode) -> None:
        if tool == self.tool:
            return
        self._reset_interaction()
        self.tool = tool
        LOGGER.debug("Tool set to %s", tool.value)
        self.bus.emit(events.TOOL, tool)

    def set_route_type(self, route_type: RouteType) -> None:
        self.route_type = route_type

    def set_route_style(self, style: RouteStyle) -> None:
        self.route_style = style

    def set_motion(self, enabled: bool) -> None:
        self.motion = enabled

    def set_show_blocking(self, visible: bool) -> None:
        self.show_blocking = visible

    def set_snap_enabled(self, enabled: bool) -> None:
        self.snap_enabled = enabled

    def set_shape_type(self, shape_type: ShapeType) -> None:
        self.shape_type = shape_type

    def set_metadata(self, **fields: Any) -> PlayMetadata:
        merged = {**self.state.metadata.model_dump(), **fields}
        self.state.metadata = PlayMetadata.model_validate(merged)
        return self.state.metadata

    # ------------------------------------------------------------------
    # Players and footballs
    # ------------------------------------------------------------------
    def _default_side(self) -> Side:
        return Side.DEFENSE if self.tab == PlayTab.DEFENSE else Side.OFFENSE

    def _snap_and_clamp(self, x: float, y: float) -> Point:
        snap_x, snap_y = snap_position(x, y, self.snap_enabled)
        return player_bounds(self.tab).clamp_point(snap_x.position, snap_y.position)

    def add_player(
        self,
        x: Optional[float] = None,
        y: Optional[float] = None,
        *,
        color: Optional[str] = None,
        label: Optional[str] = None,
        side: Optional[Side] = None,
    ) -> Player:
        side = side or self._default_side()
        if color is None:
            if label:
                color = color_for_label(side, label)
            elif side == Side.DEFENSE:
                color = DEFENSE_COLORS[DefenseRole.LINEBACKER]
            else:
                color = DEFAULT_COLOR
        if label is None:
            label = label_for_color(side, color)
        if x is None:
            x = CENTER_X
        if y is None:
            offset = -40.0 if side == Side.DEFENSE else 40.0
            y = los_y(self.tab) + offset
        position = player_bounds(self.tab).clamp_point(x, y)
        self._checkpoint()
        player = Player(
            id=_new_id("player"),
            x=position.x,
            y=position.y,
            color=color,
            label=label.strip()[:2] if label else None,
            side=side,
        )
        self.state.players.append(player)
        self.selected_player_id = player.id
        self.tool = ToolMode.SELECT
        return player

    def set_player_label(self, player_id: str, label: Optional[str]) -> Optional[Player]:
        player = self.player(player_id)
        if player is None:
            return None
        cleaned = (label or "").strip()[:2] or None
        self._checkpoint()
        updated = player.model_copy(update={"label": cleaned})
        self._replace_player(updated)
        return updated

    def _replace_player(self, updated: Player) -> None:
        self.state.players = [updated if p.id == updated.id else p for p in self.state.players]

    def move_player(self, player_id: str, x: float, y: float) -> Optional[Player]:
        if self.player(player_id) is None:
            return None
        self._checkpoint()
        return self._move_player(player_id, x, y)

    def _move_player(self, player_id: str, x: float, y: float) -> Optional[Player]:
        player = self.player(player_id)
        if player is None:
            return None
        position = self._snap_and_clamp(x, y)
        dx, dy = position.x - player.x, position.y - player.y
        updated = player.model_copy(update={"x": position.x, "y": position.y})
        self._replace_player(updated)
        if dx or dy:
            self._sync_routes(player_id, position, dx, dy)
            self._sync_shapes(player_id, dx, dy)
        return updated

    def _sync_routes(self, player_id: str, position: Point, dx: float, dy: float) -> None:
        synced: List[Route] = []
        for route in self.state.routes:
            points = route.points
            if route.is_tethered and route.player_id == player_id and points:
                points = [position] + points[1:]
            elif route.is_tethered and route.target_player_id == player_id and points:
                points = points[:-1] + [position]
            elif route.player_id == player_id:
                points = translate_points(points, dx, dy)
            else:
                synced.append(route)
                continue
            synced.append(route.model_copy(update={"points": points}))
        self.state.routes = synced

    def _sync_shapes(self, player_id: str, dx: float, dy: float) -> None:
        bounds = field_bounds(self.tab)
        self.state.shapes = [
            fit_shape(
                shape.model_copy(update={"x": shape.x + dx, "y": shape.y + dy}),
                bounds,
                min_size=self.settings.min_shape_size,
            )
            if shape.player_id == player_id
            else shape
            for shape in self.state.shapes
        ]

    def add_football(self, x: Optional[float] = None, y: Optional[float] = None) -> Football:
        bounds = field_bounds(self.tab)
        position = bounds.clamp_point(
            CENTER_X if x is None else x,
            los_y(self.tab) if y is None else y,
        )
        self._checkpoint()
        football = Football(id=_new_id("football"), x=position.x, y=position.y)
        self.state.footballs.append(football)
        return football

    def move_football(self, football_id: str, x: float, y: float) -> Optional[Football]:
        if self.football(football_id) is None:
            return None
        self._checkpoint()
        return self._move_football(football_id, x, y)

    def _move_football(self, football_id: str, x: float, y: float) -> Optional[Football]:
        football = self.football(football_id)
        if football is None:
            return None
        position = field_bounds(self.tab).clamp_point(x, y)
        updated = football.model_copy(update={"x": position.x, "y": position.y})
        self.state.footballs = [updated if f.id == football_id else f for f in self.state.footballs]
        return updated

    def toggle_play_action(self, football_id: Optional[str] = None) -> Optional[str]:
        """Flip the play-action marker; returns the marked football id."""

        if football_id is None:
            if not self.state.footballs:
                return None
            football_id = self.state.footballs[0].id
        elif self.football(football_id) is None:
            return None
        self._checkpoint()
        current = self.state.play_action_football_id
        self.state.play_action_football_id = None if current == football_id else football_id
        return self.state.play_action_football_id

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------
    def _remove_players(self, player_ids: Iterable[str]) -> None:
        doomed = set(player_ids)
        self.state.players = [p for p in self.state.players if p.id not in doomed]
        self.state.routes = [
            r
            for r in self.state.routes
            if r.player_id not in doomed and r.target_player_id not in doomed
        ]
        self.state.shapes = [s for s in self.state.shapes if s.player_id not in doomed]
        if self.selected_player_id in doomed:
            self.selected_player_id = None
        if self.route(self.selected_route_id) is None:
            self.selected_route_id = None
        if self.shape(self.selected_shape_id) is None:
            self.selected_shape_id = None

    def delete_player(self, player_id: str) -> bool:
        if self.player(player_id) is None:
            return False
        self._checkpoint()
        self._remove_players([player_id])
        return True

    def delete_route(self, route_id: str) -> bool:
        if self.route(route_id) is None:
            return False
        self._checkpoint()
        self.state.routes = [r for r in self.state.routes if r.id != route_id]
        if self.selected_route_id == route_id:
            self.selected_route_id = None
        return True

    def delete_shape(self, shape_id: str) -> bool:
        if self.shape(shape_id) is None:
            return False
        self._checkpoint()
        self.state.shapes = [s for s in self.state.shapes if s.id != shape_id]
        if self.selected_shape_id == shape_id:
            self.selected_shape_id = None
        return True

    def delete_selected(self) -> bool:
        if self.selected_player_id is not None:
            return self.delete_player(self.selected_player_id)
        if self.selected_route_id is not None:
            return self.delete_route(self.selected_route_id)
        if self.selected_shape_id is not None:
            return self.delete_shape(self.selected_shape_id)
        return False

    def clear_all(self) -> None:
        self._reset_interaction()
        self._checkpoint()
        self.state.players = []
        self.state.routes = []
        self.state.shapes = []
        self.state.footballs = []
        self.state.play_action_football_id = None
        self._clear_selection()

    # ------------------------------------------------------------------
    # Routes and shapes
    # ------------------------------------------------------------------
    def toggle_primary(self, route_id: str) -> Optional[Route]:
        """Mark *route_id* as the primary target, or clear it if it already is."""

        target = self.route(route_id)
        if target is None:
            return None
        self._checkpoint()
        make_primary = target.priority != 1
        updated: List[Route] = []
        for route in self.state.routes:
            if route.id == route_id:
                route = route.model_copy(update={"priority": 1 if make_primary else None})
            elif make_primary and route.priority == 1:
                route = route.model_copy(update={"priority": None})
            updated.append(route)
        self.state.routes = updated
        return self.route(route_id)

    def retether_shape(self, shape_id: str, player_id: str) -> Optional[Shape]:
        shape = self.shape(shape_id)
        if shape is None or self.player(player_id) is None:
            return None
        self._checkpoint()
        updated = shape.model_copy(update={"player_id": player_id})
        self._replace_shape(updated)
        return updated

    def _replace_shape(self, updated: Shape) -> None:
        self.state.shapes = [updated if s.id == updated.id else s for s in self.state.shapes]

    def _route_color(self, owner: Player, route_type: RouteType, action: Optional[DefensiveAction]) -> str:
        if route_type == RouteType.BLOCKING:
            return ROUTE_COLORS[RouteColor.BLOCKING]
        if action == DefensiveAction.MAN:
            return ROUTE_COLORS[RouteColor.MAN]
        if action == DefensiveAction.BLITZ:
            return ROUTE_COLORS[RouteColor.BLITZ]
        return owner.color

    def _commit_route(self, draft: RouteDraft) -> Optional[Route]:
        owner = self.player(draft.player_id)
        if owner is None:
            LOGGER.warning("Dropping route for missing player %s", draft.player_id)
            return None
        points = [owner.position] + list(draft.points[1:])
        is_motion = self.motion and points[0].y >= los_y(self.tab)
        self._checkpoint()
        route = Route(
            id=_new_id("route"),
            player_id=owner.id,
            points=points,
            type=draft.route_type,
            style=draft.style,
            color=self._route_color(owner, draft.route_type, draft.defensive_action),
            is_motion=is_motion,
            defensive_action=draft.defensive_action,
        )
        self.state.routes.append(route)
        self.selected_route_id = route.id
        self.selected_player_id = None
        self.tool = ToolMode.SELECT
        self.bus.emit(events.TOOL, self.tool)
        return route

    def _clear_assignment(self, defender_id: str) -> None:
        self.state.routes = [
            r
            for r in self.state.routes
            if not (r.player_id == defender_id and r.defensive_action is not None)
        ]
        self.state.shapes = [s for s in self.state.shapes if s.player_id != defender_id]

    def _assignment_route(
        self,
        defender: Player,
        target: Point,
        action: DefensiveAction,
        target_player_id: Optional[str],
    ) -> Route:
        self._checkpoint()
        self._clear_assignment(defender.id)
        route = Route(
            id=_new_id("route"),
            player_id=defender.id,
            points=[defender.position, target],
            type=RouteType.ASSIGNMENT,
            style=RouteStyle.STRAIGHT,
            color=self._route_color(defender, RouteType.ASSIGNMENT, action),
            defensive_action=action,
            target_player_id=target_player_id,
        )
        self.state.routes.append(route)
        self.selected_route_id = route.id
        self.tool = ToolMode.SELECT
        return route

    def _offense_players(self) -> List[Player]:
        return [p for p in self.state.players if p.side == Side.OFFENSE]

    def assign_blitz(self, defender_id: str) -> Optional[Route]:
        defender = self.player(defender_id)
        if defender is None:
            return None
        quarterback = next(
            (p for p in self._offense_players() if (p.label or "").upper() == "QB"),
            None,
        )
        if quarterback is None:
            LOGGER.debug("No quarterback on the field, blitzing the default spot")
            return self._assignment_route(
                defender, Point(x=CENTER_X, y=QB_Y), DefensiveAction.BLITZ, None
            )
        return self._assignment_route(
            defender, quarterback.position, DefensiveAction.BLITZ, quarterback.id
        )

    def assign_man(self, defender_id: str) -> Optional[Route]:
        defender = self.player(defender_id)
        if defender is None:
            return None
        offense = self._offense_players()
        if not offense:
            LOGGER.warning("Man coverage for %s has no offensive player to cover", defender_id)
            return None
        claimed = {
            r.target_player_id
            for r in self.state.routes
            if r.defensive_action == DefensiveAction.MAN and r.player_id != defender_id
        }
        unclaimed = [p for p in offense if p.id not in claimed]
        if unclaimed:
            target = min(unclaimed, key=lambda p: distance(defender.position, p.position))
        else:
            target = offense[0]
        return self._assignment_route(defender, target.position, DefensiveAction.MAN, target.id)

    def assign_zone(self, defender_id: str) -> Optional[Shape]:
        defender = self.player(defender_id)
        if defender is None:
            return None
        self._checkpoint()
        self._clear_assignment(defender.id)
        shape = fit_shape(
            Shape(
                id=_new_id("shape"),
                player_id=defender.id,
                type=ShapeType.OVAL,
                x=defender.x - DEFAULT_ZONE_WIDTH / 2,
                y=defender.y - DEFAULT_ZONE_HEIGHT / 2,
                width=DEFAULT_ZONE_WIDTH,
                height=DEFAULT_ZONE_HEIGHT,
                color=ROUTE_COLORS[RouteColor.ZONE],
            ),
            field_bounds(self.tab),
            min_size=self.settings.min_shape_size,
        )
        self.state.shapes.append(shape)
        self.selected_shape_id = shape.id
        self.tool = ToolMode.SELECT
        return shape

    # ------------------------------------------------------------------
    # Formations
    # ------------------------------------------------------------------
    def load_formation(
        self, size: str, side: Side | str, variation: Optional[str] = None
    ) -> List[Player]:
        """Replace the players of *side* with a preset formation.

        Formation coordinates are laid out against the offense tab's line of
        scrimmage and are shifted to the active tab's line.
        """

        formation = get_formation(size, side, variation)
        if formation is None:
            return []
        side = Side(side)
        shift = los_y(self.tab) - LOS_Y
        bounds = player_bounds(self.tab)
        self._checkpoint()
        self._remove_players([p.id for p in self.state.players if p.side == side])
        added: List[Player] = []
        for entry in formation.players:
            position = bounds.clamp_point(entry.x, entry.y + shift)
            added.append(
                Player(
                    id=_new_id("player"),
                    x=position.x,
                    y=position.y,
                    color=entry.color,
                    label=entry.label[:2],
                    side=entry.side,
                )
            )
        self.state.players.extend(added)
        self.state.metadata = self.state.metadata.model_copy(
            update={"formation": formation.name, "game_format": size}
        )
        LOGGER.debug("Loaded formation %s with %d players", formation.name, len(added))
        return added

    # ------------------------------------------------------------------
    # Hit testing
    # ------------------------------------------------------------------
    def player_at(self, point: Point) -> Optional[Player]:
        for player in reversed(self.state.players):
            if distance(player.position, point) <= PLAYER_HIT_RADIUS:
                return player
        return None

    def football_at(self, point: Point) -> Optional[Football]:
        for football in reversed(self.state.footballs):
            if distance(football.position, point) <= FOOTBALL_HIT_RADIUS:
                return football
        return None

    def shape_at(self, point: Point) -> Optional[Shape]:
        for shape in reversed(self.state.shapes):
            if contains(shape, point):
                return shape
        return None

    def route_at(self, point: Point) -> Optional[Route]:
        for route in reversed(self.state.routes):
            if route.type == RouteType.BLOCKING and not self.show_blocking:
                continue
            for a, b in zip(route.points, route.points[1:]):
                if _segment_distance(point, a, b) <= ROUTE_HIT_DISTANCE:
                    return route
        return None

    def _nearest_player(self, point: Point, side: Optional[Side] = None) -> Optional[Player]:
        candidates = [p for p in self.state.players if side is None or p.side == side]
        if not candidates:
            return None
        return min(candidates, key=lambda p: distance(p.position, point))

    # ------------------------------------------------------------------
    # Pointer pipeline
    # ------------------------------------------------------------------
    def pointer_down(self, x: float, y: float, now: Optional[float] = None) -> None:
        now = self._now(now)
        point = Point(x=x, y=y)
        if self.menu is not None:
            self.close_menu()
            return
        if self.drawing.is_drawing:
            return

        if self.tool == ToolMode.SELECT:
            self._select_pointer_down(point, now)
        elif self.tool == ToolMode.ROUTE:
            player = self.player_at(point)
            if player is not None:
                self.selected_player_id = player.id
                self.drawing.begin(player.id, player.position, self.route_type, self.route_style)
        elif self.tool == ToolMode.PLAYER:
            self.add_player(x, y)
        elif self.tool == ToolMode.SHAPE:
            self._shape_origin = field_bounds(self.tab).clamp_point(x, y)
            self._shape_end = self._shape_origin
        elif self.tool == ToolMode.LABEL:
            player = self.player_at(point)
            self._clear_selection()
            if player is not None:
                self.selected_player_id = player.id

    def _select_pointer_down(self, point: Point, now: float) -> None:
        selected_shape = self.shape(self.selected_shape_id)
        if selected_shape is not None:
            handle = hit_handle(selected_shape, point)
            if handle is not None:
                self._shape_resize = ShapeResize(selected_shape.id, handle)
                self._shape_moved = False
                return

        player = self.player_at(point)
        if player is not None:
            # Selection waits for pointer-up; a drag or menu does not select.
            self.gestures.pointer_down(player.id, point, player.position, now, kind=TokenKind.PLAYER)
            return

        football = self.football_at(point)
        if football is not None:
            self.gestures.pointer_down(
                football.id, point, football.position, now, kind=TokenKind.FOOTBALL
            )
            return

        shape = self.shape_at(point)
        if shape is not None:
            self._clear_selection()
            self.selected_shape_id = shape.id
            self._shape_drag = begin_drag(shape, point)
            self._shape_moved = False
            return

        route = self.route_at(point)
        self._clear_selection()
        if route is not None:
            self.selected_route_id = route.id

    def poll(self, now: Optional[float] = None) -> Optional[ContextMenu]:
        """Fire a due long-press; the UI calls this when its timer elapses."""

        press = self.gestures.poll(self._now(now))
        if press is None:
            return None
        player = self.player(press.target_id)
        if player is None:
            return None
        self.menu = ContextMenu(
            player_id=player.id,
            anchor=Point(x=player.x, y=player.y + MENU_OFFSET),
            side=player.side,
        )
        self.bus.emit(events.MENU, self.menu)
        return self.menu

    def pointer_move(self, x: float, y: float, now: Optional[float] = None) -> None:
        now = self._now(now)
        point = Point(x=x, y=y)

        if self.drawing.is_drawing:
            self.drawing.extend(point)
            return

        pending = self.drawing.pending
        if pending is not None and pending.armed:
            hovered = self.player_at(point)
            if hovered is not None:
                self.pointer_enter_player(hovered.id)
            return

        if self.gestures.in_gesture:
            self.poll(now)
            dragging = self.gestures.active_drag is not None
            position = self.gestures.pointer_move(point, now)
            if position is None:
                return
            if not dragging:
                self._checkpoint()
            drag = self.gestures.active_drag
            if drag is None:
                return
            if drag.kind == TokenKind.FOOTBALL:
                self._move_football(drag.target_id, position.x, position.y)
            else:
                self._move_player(drag.target_id, position.x, position.y)
            return

        bounds = field_bounds(self.tab)
        if self._shape_resize is not None:
            shape = self.shape(self._shape_resize.shape_id)
            if shape is not None:
                self._mark_shape_moved()
                self._replace_shape(
                    resize_shape(
                        shape,
                        self._shape_resize.handle,
                        point,
                        bounds,
                        min_size=self.settings.min_shape_size,
                    )
                )
            return
        if self._shape_drag is not None:
            shape = self.shape(self._shape_drag.shape_id)
            if shape is not None:
                self._mark_shape_moved()
                self._replace_shape(drag_shape(shape, self._shape_drag, point, bounds))
            return
        if self._shape_origin is not None:
            self._shape_end = bounds.clamp_point(x, y)

    def _mark_shape_moved(self) -> None:
        if not self._shape_moved:
            self._checkpoint()
            self._shape_moved = True

    def pointer_up(self, x: float, y: float, now: Optional[float] = None) -> GestureOutcome:
        now = self._now(now)
        if self.drawing.is_drawing:
            self.drawing.extend(Point(x=x, y=y))
            draft = self.drawing.finish()
            if draft is not None:
                self._commit_route(draft)
            return GestureOutcome.NONE

        if self.gestures.in_gesture or self.gestures.outcome != GestureOutcome.NONE:
            intent = self.gestures.pending
            self.poll(now)
            outcome = self.gestures.pointer_up(now)
            is_player = intent is not None and intent.kind == TokenKind.PLAYER
            if outcome == GestureOutcome.CLICK and is_player:
                self._clear_selection()
                self.selected_player_id = intent.target_id
            return outcome

        if self._shape_resize is not None:
            self._shape_resize = None
            return GestureOutcome.NONE
        if self._shape_drag is not None:
            if self._shape_moved:
                self._retether_to_nearest(self._shape_drag.shape_id)
            self._shape_drag = None
            return GestureOutcome.NONE
        if self._shape_origin is not None:
            self._finish_shape(self._shape_origin, field_bounds(self.tab).clamp_point(x, y))
        return GestureOutcome.NONE

    def click(self, x: float, y: float) -> bool:
        """Synthetic click after pointer-up; ``False`` when it was suppressed."""

        if not self.gestures.consume_click():
            return False
        if self.tool == ToolMode.SELECT and self.menu is None:
            point = Point(x=x, y=y)
            if (
                self.player_at(point) is None
                and self.football_at(point) is None
                and self.shape_at(point) is None
                and self.route_at(point) is None
            ):
                self._clear_selection()
        return True

    def _retether_to_nearest(self, shape_id: str) -> None:
        shape = self.shape(shape_id)
        if shape is None:
            return
        owner = self.player(shape.player_id)
        centre = Point(x=shape.x + shape.width / 2, y=shape.y + shape.height / 2)
        nearest = self._nearest_player(centre, owner.side if owner else None)
        if nearest is not None and nearest.id != shape.player_id:
            self._replace_shape(shape.model_copy(update={"player_id": nearest.id}))
            LOGGER.debug("Shape %s retethered to %s", shape_id, nearest.id)

    def _finish_shape(self, start: Point, end: Point) -> Optional[Shape]:
        self._shape_origin = None
        self._shape_end = None
        centre = Point(x=(start.x + end.x) / 2, y=(start.y + end.y) / 2)
        owner = self._nearest_player(centre)
        if owner is None:
            LOGGER.warning("Cannot create a zone without a player to tether it to")
            return None
        self._checkpoint()
        shape = shape_from_corners(
            _new_id("shape"),
            owner.id,
            start,
            end,
            self.shape_type,
            self.shape_color,
            field_bounds(self.tab),
            min_size=self.settings.min_shape_size,
        )
        self.state.shapes.append(shape)
        self._clear_selection()
        self.selected_shape_id = shape.id
        self.tool = ToolMode.SELECT
        self.bus.emit(events.TOOL, self.tool)
        return shape

    # ------------------------------------------------------------------
    # Context menu and hover-to-confirm route selection
    # ------------------------------------------------------------------
    def choose_menu_route_type(self, route_type: RouteType) -> None:
        menu = self.menu
        if menu is None:
            return
        self.drawing.choose_type(menu.player_id, route_type)
        menu.route_type = route_type
        menu.step = MenuStep.ROUTE_STYLE
        self.bus.emit(events.MENU, menu)

    def choose_menu_route_style(self, style: RouteStyle) -> None:
        if self.menu is None or self.menu.step != MenuStep.ROUTE_STYLE:
            return
        self.drawing.choose_style(style)
        self.menu = None
        self.bus.emit(events.MENU, None)

    def choose_menu_defensive_action(self, action: DefensiveAction) -> None:
        menu = self.menu
        if menu is None:
            return
        self.close_menu()
        if action == DefensiveAction.BLITZ:
            self.assign_blitz(menu.player_id)
        elif action == DefensiveAction.MAN:
            self.assign_man(menu.player_id)
        else:
            self.assign_zone(menu.player_id)

    def close_menu(self) -> None:
        if self.menu is None:
            return
        self.menu = None
        self.bus.emit(events.MENU, None)

    def pointer_enter_player(self, player_id: str) -> bool:
        player = self.player(player_id)
        if player is None:
            return False
        return self.drawing.pointer_enter(player_id, player.position)

    # ------------------------------------------------------------------
    # History and tabs
    # ------------------------------------------------------------------
    def undo(self) -> bool:
        self._reset_interaction()
        if not self.state.undo():
            return False
        self._clear_selection()
        self.bus.emit(events.CHANGED, self.tab)
        return True

    def switch_tab(self, tab: PlayTab) -> bool:
        if tab == self.tab:
            return False
        if self.busy:
            LOGGER.warning("Ignoring switch to %s while a play is generating", tab.value)
            self.bus.toast("Generation in progress", "Wait for the current play to finish generating.")
            return False
        self._reset_interaction()
        self._clear_selection()
        self.state = self.tabs.switch(self.tab, self.state, tab)
        self.tab = tab
        self.bus.emit(events.CHANGED, tab)
        return True

    # ------------------------------------------------------------------
    # Play blob
    # ------------------------------------------------------------------
    def to_play_data(self) -> PlayData:
        return self.state.to_play_data()

    def load_play_data(self, data: PlayData | Mapping[str, Any]) -> None:
        """Load a stored play into the active tab.

        Raises :class:`domain.errors.PlayDataError` for blobs that fail
        validation; the canvas is left untouched in that case.
        """

        if not isinstance(data, PlayData):
            data = play_blob.load_play_data(data)
        self._reset_interaction()
        self._checkpoint()
        self._replace_entities(data, metadata=data.metadata)
        self.bus.emit(events.CHANGED, self.tab)

    def _replace_entities(self, data: PlayData, *, metadata: PlayMetadata) -> None:
        copy = data.model_copy(deep=True)
        self.state.players = copy.players
        self.state.routes = copy.routes
        self.state.shapes = copy.shapes
        self.state.footballs = copy.footballs
        self.state.play_action_football_id = copy.play_action_football_id
        self.state.metadata = metadata
        self._clear_selection()

    # ------------------------------------------------------------------
    # Play generation
    # ------------------------------------------------------------------
    def _set_busy(self, busy: bool) -> None:
        self.busy = busy
        self.bus.emit(events.BUSY, busy)

    def begin_generation(self) -> bool:
        if self.busy:
            LOGGER.warning("Play generation already in progress")
            self.bus.toast("Generation in progress", "Wait for the current play to finish generating.")
            return False
        self._reset_interaction()
        self._checkpoint()
        self._generation_checkpoint = self.state.history[-1]
        self._set_busy(True)
        return True

    def _checkpoint_is_top(self) -> bool:
        history = self.state.history
        checkpoint = self._generation_checkpoint
        return checkpoint is not None and bool(history) and history[-1] is checkpoint

    def apply_generated_play(self, payload: Mapping[str, Any]) -> PlayData:
        # Edits or undos made while the request was pending moved the
        # checkpoint; take a fresh one so the replacement stays undoable.
        if not self._checkpoint_is_top():
            self._checkpoint()
        self._generation_checkpoint = None
        data = normalize_generated_play(payload, self.tab)
        metadata = self.state.metadata.model_copy(
            update={"pre_snap_motion": data.metadata.pre_snap_motion}
        )
        self._replace_entities(data, metadata=metadata)
        self._set_busy(False)
        self.bus.toast(
            "Play generated",
            f"Added {len(data.players)} players and {len(data.routes)} routes.",
        )
        self.bus.emit(events.CHANGED, self.tab)
        return data

    def fail_generation(self, error: BaseException | str) -> None:
        if self._checkpoint_is_top():
            self.state.history.pop()
        self._generation_checkpoint = None
        self._set_busy(False)
        LOGGER.warning("Play generation failed: %s", error)
        self.bus.toast("Generation failed", str(error), error=True)

    def generate(
        self, client: PlayGenerationClient, request: GenerationRequest
    ) -> Optional[PlayData]:
        """Run a generation request synchronously against *client*."""

        if not self.begin_generation():
            return None
        try:
            payload = client.generate(request)
        except PlayGenerationError as exc:
            self.fail_generation(exc)
            return None
        return self.apply_generated_play(payload)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def _draft_preview(self) -> Optional[DraftPreview]:
        if not self.drawing.is_drawing:
            return None
        owner = self.player(self.drawing.player_id)
        if owner is None:
            return None
        return DraftPreview(
            points=self.drawing.preview(),
            style=self.drawing.style,
            color=self._route_color(owner, self.drawing.route_type, None),
            is_motion=self.motion,
        )

    def shape_preview(self) -> Optional[Sequence[Point]]:
        """Corners of the zone being dragged out with the shape tool."""

        if self._shape_origin is None or self._shape_end is None:
            return None
        return (self._shape_origin, self._shape_end)

    def render(self) -> RenderModel:
        return build_render_model(
            players=self.state.players,
            routes=self.state.routes,
            shapes=self.state.shapes,
            footballs=self.state.footballs,
            play_action_football_id=self.state.play_action_football_id,
            tab=self.tab,
            tool=self.tool,
            selected_player_id=self.selected_player_id,
            selected_route_id=self.selected_route_id,
            selected_shape_id=self.selected_shape_id,
            show_blocking=self.show_blocking,
            draft=self._draft_preview(),
        )

    def summary(self) -> Dict[str, int]:
        return {
            "players": len(self.state.players),
            "routes": len(self.state.routes),
            "shapes": len(self.state.shapes),
            "footballs": len(self.state.footballs),
        }
