from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple
from xml.sax.saxutils import escape, quoteattr

from canvas.geometry import arrow_angle, crosses_los, route_path, split_at_los
from canvas.shapes import handle_positions
from domain.football_config import (
    DEFAULT_COLOR,
    FIELD_HEIGHT,
    FIELD_WIDTH,
    HEADER_HEIGHT,
    PLAYER_SIZE,
    SELECTION_COLOR,
    header_start_y,
    los_y,
)
from domain.models import (
    DefensiveAction,
    Football,
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

PRIMARY_WIDTH = 4.0
ROUTE_WIDTH = 3.0
DASH_PATTERN = "5,5"
SHAPE_FILL_OPACITY = 0.3
DRAFT_OPACITY = 0.5
FIELD_COLOR = "#15803d"
HEADER_COLOR = "#111827"
LOS_COLOR = "#ffffff"
FOOTBALL_COLOR = "#8B4513"
FOOTBALL_STROKE = "#5C3317"


class GlyphKind(str, Enum):
    CIRCLE = "circle"
    CROSS = "cross"
    ELLIPSE = "ellipse"
    RECT = "rect"


class EndCap(str, Enum):
    NONE = "none"
    ARROW = "arrow"
    BAR = "bar"


@dataclass(frozen=True)
class PlayerGlyph:
    player_id: str
    x: float
    y: float
    color: str
    label: str
    kind: GlyphKind
    selected: bool = False
    radius: float = PLAYER_SIZE


@dataclass(frozen=True)
class PathGlyph:
    d: str
    color: str
    width: float
    dashed: bool = False
    end_cap: EndCap = EndCap.NONE
    end: Optional[Point] = None
    angle: float = 0.0
    opacity: float = 1.0


@dataclass(frozen=True)
class RouteGlyph:
    route_id: str
    player_id: str
    paths: Tuple[PathGlyph, ...]
    primary: bool = False
    badge: Optional[Point] = None
    selected: bool = False


@dataclass(frozen=True)
class ShapeGlyph:
    shape_id: str
    kind: GlyphKind
    x: float
    y: float
    width: float
    height: float
    color: str
    selected: bool = False
    handles: Tuple[Point, ...] = ()


@dataclass(frozen=True)
class FootballGlyph:
    football_id: str
    x: float
    y: float
    play_action: bool = False


@dataclass(frozen=True)
class DraftPreview:
    """Route currently being drawn, shown translucent under the pointer."""

    points: Sequence[Point]
    style: RouteStyle
    color: str
    is_motion: bool = False


@dataclass
class RenderModel:
    width: float
    height: float
    tab: PlayTab
    tool: ToolMode
    header_y: float
    los_y: float
    players: List[PlayerGlyph] = field(default_factory=list)
    routes: List[RouteGlyph] = field(default_factory=list)
    shapes: List[ShapeGlyph] = field(default_factory=list)
    footballs: List[FootballGlyph] = field(default_factory=list)
    draft: Optional[PathGlyph] = None
    draft_vertices: List[Point] = field(default_factory=list)


def route_color(route: Route, owner: Optional[Player]) -> str:
    if route.color:
        return route.color
    return owner.color if owner is not None else DEFAULT_COLOR


def _end_cap(route: Route) -> EndCap:
    if route.type == RouteType.BLOCKING:
        return EndCap.BAR
    return EndCap.ARROW


def route_paths(route: Route, color: str, line_of_scrimmage: float) -> Tuple[PathGlyph, ...]:
    """Stroke segments for one route.

    Motion routes render their pre-snap portion dashed; the post-snap portion
    is solid and only gets an end cap when the route actually crosses the LOS.
    """

    points = route.points
    if len(points) < 2:
        return ()
    width = PRIMARY_WIDTH if route.priority == 1 else ROUTE_WIDTH

    if route.is_motion:
        if not crosses_los(points, line_of_scrimmage):
            return (PathGlyph(route_path(points, route.style), color, width, dashed=True),)
        below, above = split_at_los(points, line_of_scrimmage)
        glyphs = []
        if len(below) >= 2:
            glyphs.append(PathGlyph(route_path(below, route.style), color, width, dashed=True))
        if len(above) >= 2:
            glyphs.append(
                PathGlyph(
                    route_path(above, route.style),
                    color,
                    width,
                    end_cap=_end_cap(route),
                    end=above[-1],
                    angle=arrow_angle(above),
                )
            )
        return tuple(glyphs)

    dashed = route.defensive_action == DefensiveAction.MAN
    return (
        PathGlyph(
            route_path(points, route.style),
            color,
            width,
            dashed=dashed,
            end_cap=_end_cap(route),
            end=points[-1],
            angle=arrow_angle(points),
        ),
    )


def _player_glyph(player: Player, selected: bool) -> PlayerGlyph:
    kind = GlyphKind.CROSS if player.side == Side.DEFENSE else GlyphKind.CIRCLE
    return PlayerGlyph(player.id, player.x, player.y, player.color, player.label or "", kind, selected)


def _shape_glyph(shape: Shape, selected: bool) -> ShapeGlyph:
    kind = GlyphKind.RECT if shape.type == ShapeType.RECTANGLE else GlyphKind.ELLIPSE
    handles = tuple(handle_positions(shape).values()) if selected else ()
    return ShapeGlyph(
        shape.id, kind, shape.x, shape.y, shape.width, shape.height, shape.color, selected, handles
    )


def build_render_model(
    *,
    players: Sequence[Player],
    routes: Sequence[Route],
    shapes: Sequence[Shape],
    footballs: Sequence[Football],
    play_action_football_id: Optional[str],
    tab: PlayTab,
    tool: ToolMode,
    selected_player_id: Optional[str] = None,
    selected_route_id: Optional[str] = None,
    selected_shape_id: Optional[str] = None,
    show_blocking: bool = True,
    draft: Optional[DraftPreview] = None,
) -> RenderModel:
    line_of_scrimmage = los_y(tab)
    owners: Dict[str, Player] = {player.id: player for player in players}
    model = RenderModel(
        width=FIELD_WIDTH,
        height=FIELD_HEIGHT,
        tab=tab,
        tool=tool,
        header_y=header_start_y(tab),
        los_y=line_of_scrimmage,
    )

    model.shapes = [_shape_glyph(shape, shape.id == selected_shape_id) for shape in shapes]

    for route in routes:
        if route.type == RouteType.BLOCKING and not show_blocking:
            continue
        color = route_color(route, owners.get(route.player_id))
        paths = route_paths(route, color, line_of_scrimmage)
        if not paths:
            continue
        primary = route.priority == 1
        model.routes.append(
            RouteGlyph(
                route_id=route.id,
                player_id=route.player_id,
                paths=paths,
                primary=primary,
                badge=route.points[-1] if primary else None,
                selected=route.id == selected_route_id,
            )
        )

    model.footballs = [
        FootballGlyph(football.id, football.x, football.y, football.id == play_action_football_id)
        for football in footballs
    ]
    model.players = [_player_glyph(player, player.id == selected_player_id) for player in players]

    if draft is not None and draft.points:
        model.draft_vertices = list(draft.points)
        if len(draft.points) >= 2:
            model.draft = PathGlyph(
                route_path(draft.points, draft.style),
                draft.color,
                ROUTE_WIDTH,
                dashed=draft.is_motion,
                opacity=DRAFT_OPACITY,
            )
    return model


# ----------------------------------------------------------------------
# SVG serialisation
# ----------------------------------------------------------------------
def _num(value: float) -> str:
    return f"{round(value, 2):g}"


def _path_svg(glyph: PathGlyph) -> List[str]:
    attrs = [
        f"d={quoteattr(glyph.d)}",
        'fill="none"',
        f"stroke={quoteattr(glyph.color)}",
        f'stroke-width="{_num(glyph.width)}"',
        'stroke-linecap="round"',
        'stroke-linejoin="round"',
    ]
    if glyph.dashed:
        attrs.append(f'stroke-dasharray="{DASH_PATTERN}"')
    if glyph.opacity != 1.0:
        attrs.append(f'opacity="{_num(glyph.opacity)}"')
    lines = [f"<path {' '.join(attrs)}/>"]
    if glyph.end is not None and glyph.end_cap != EndCap.NONE:
        transform = f"translate({_num(glyph.end.x)} {_num(glyph.end.y)}) rotate({_num(glyph.angle)})"
        if glyph.end_cap == EndCap.ARROW:
            shape = f'<polygon points="-10,-5 0,0 -10,5" fill={quoteattr(glyph.color)}'
        else:
            shape = (
                f'<line x1="0" y1="-8" x2="0" y2="8" stroke={quoteattr(glyph.color)} '
                f'stroke-width="{_num(glyph.width)}"'
            )
        lines.append(f'{shape} transform="{transform}"/>')
    return lines


def _player_svg(glyph: PlayerGlyph) -> List[str]:
    x, y, r = glyph.x, glyph.y, glyph.radius
    color = quoteattr(glyph.color)
    lines: List[str] = []
    if glyph.selected:
        lines.append(
            f'<circle cx="{_num(x)}" cy="{_num(y)}" r="{_num(r + 5)}" fill="none" '
            f'stroke="{SELECTION_COLOR}" stroke-width="3"/>'
        )
    if glyph.kind == GlyphKind.CROSS:
        lines.append(
            f'<line x1="{_num(x - r)}" y1="{_num(y - r)}" x2="{_num(x + r)}" y2="{_num(y + r)}" '
            f'stroke={color} stroke-width="3"/>'
        )
        lines.append(
            f'<line x1="{_num(x + r)}" y1="{_num(y - r)}" x2="{_num(x - r)}" y2="{_num(y + r)}" '
            f'stroke={color} stroke-width="3"/>'
        )
        label_y = y - r - 4
    else:
        lines.append(
            f'<circle cx="{_num(x)}" cy="{_num(y)}" r="{_num(r)}" fill={color} '
            'stroke="#ffffff" stroke-width="2"/>'
        )
        label_y = y + 4
    if glyph.label:
        lines.append(
            f'<text x="{_num(x)}" y="{_num(label_y)}" text-anchor="middle" fill="#ffffff" '
            f'font-size="10" font-weight="bold">{escape(glyph.label)}</text>'
        )
    return lines


def _shape_svg(glyph: ShapeGlyph) -> List[str]:
    color = quoteattr(glyph.color)
    paint = f'fill={color} fill-opacity="{_num(SHAPE_FILL_OPACITY)}" stroke={color} stroke-width="2"'
    if glyph.kind == GlyphKind.RECT:
        lines = [
            f'<rect x="{_num(glyph.x)}" y="{_num(glyph.y)}" width="{_num(glyph.width)}" '
            f'height="{_num(glyph.height)}" {paint}/>'
        ]
    else:
        lines = [
            f'<ellipse cx="{_num(glyph.x + glyph.width / 2)}" cy="{_num(glyph.y + glyph.height / 2)}" '
            f'rx="{_num(glyph.width / 2)}" ry="{_num(glyph.height / 2)}" {paint}/>'
        ]
    for handle in glyph.handles:
        lines.append(
            f'<rect x="{_num(handle.x - 4)}" y="{_num(handle.y - 4)}" width="8" height="8" '
            f'fill="#ffffff" stroke="{SELECTION_COLOR}"/>'
        )
    return lines


def _football_svg(glyph: FootballGlyph) -> List[str]:
    lines = [
        f'<ellipse cx="{_num(glyph.x)}" cy="{_num(glyph.y)}" rx="10" ry="6" '
        f'fill="{FOOTBALL_COLOR}" stroke="{FOOTBALL_STROKE}" stroke-width="1"/>'
    ]
    if glyph.play_action:
        lines.append(f'<circle cx="{_num(glyph.x)}" cy="{_num(glyph.y + 12)}" r="8" fill="#000000"/>')
        lines.append(
            f'<text x="{_num(glyph.x)}" y="{_num(glyph.y + 16)}" text-anchor="middle" '
            'fill="#ffffff" font-size="10" font-weight="bold">PA</text>'
        )
    return lines


def to_svg(model: RenderModel) -> str:
    """Serialise *model* as a standalone SVG document at native field size."""

    width, height = _num(model.width), _num(model.height)
    lines = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" '
        f'viewBox="0 0 {width} {height}">',
        f'<rect x="0" y="0" width="{width}" height="{height}" fill="{FIELD_COLOR}"/>',
        f'<rect x="0" y="{_num(model.header_y)}" width="{width}" height="{_num(HEADER_HEIGHT)}" '
        f'fill="{HEADER_COLOR}"/>',
        f'<line x1="0" y1="{_num(model.los_y)}" x2="{width}" y2="{_num(model.los_y)}" '
        f'stroke="{LOS_COLOR}" stroke-width="3"/>',
    ]
    for shape in model.shapes:
        lines.extend(_shape_svg(shape))
    for route in model.routes:
        for path in route.paths:
            lines.extend(_path_svg(path))
        if route.badge is not None:
            lines.append(
                f'<circle cx="{_num(route.badge.x)}" cy="{_num(route.badge.y)}" r="10" '
                'fill="#ffffff" stroke="#000000" stroke-width="2"/>'
            )
            lines.append(
                f'<text x="{_num(route.badge.x)}" y="{_num(route.badge.y + 4)}" text-anchor="middle" '
                'fill="#000000" font-size="12" font-weight="bold">1</text>'
            )
    if model.draft is not None:
        lines.extend(_path_svg(model.draft))
    for vertex in model.draft_vertices:
        lines.append(
            f'<circle cx="{_num(vertex.x)}" cy="{_num(vertex.y)}" r="4" fill="#ffffff" '
            'stroke="#000000" stroke-width="1"/>'
        )
    for football in model.footballs:
        lines.extend(_football_svg(football))
    for player in model.players:
        lines.extend(_player_svg(player))
    lines.append("</svg>")
    return "\n".join(lines)
