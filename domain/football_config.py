from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from domain.models import PlayTab, Point, Side

LOGGER = logging.getLogger("domain.football_config")

# Field geometry, in canvas pixels.
FIELD_WIDTH = 694.0
FIELD_HEIGHT = 392.0
LOS_Y = 284.0
PIXELS_PER_YARD = 12.0
HEADER_HEIGHT = 60.0
SIDE_PADDING = 27.0
BOTTOM_PADDING = 12.0
CENTER_X = 347.0
SPACING_UNIT = 30.0
DEFENSE_SPACING = 60.0
PLAYER_SIZE = 12.0
QB_Y = LOS_Y + PLAYER_SIZE + 4
RB_Y = LOS_Y + 75

FIELD_LEFT = SIDE_PADDING
FIELD_RIGHT = FIELD_WIDTH - SIDE_PADDING
LEFT_HASH_X = FIELD_LEFT + 160
RIGHT_HASH_X = FIELD_RIGHT - 160

DEFAULT_COLOR = "#6b7280"
SNAP_THRESHOLD = PIXELS_PER_YARD * 0.5


@dataclass(frozen=True)
class Bounds:
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    def clamp_point(self, x: float, y: float) -> Point:
        return Point(
            x=min(self.max_x, max(self.min_x, x)),
            y=min(self.max_y, max(self.min_y, y)),
        )

    def contains(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y


def _flipped(tab: PlayTab) -> bool:
    # The defense tab draws its header band at the bottom of the canvas.
    return tab == PlayTab.DEFENSE


def field_start_y(tab: PlayTab) -> float:
    return 0.0 if _flipped(tab) else HEADER_HEIGHT


def header_start_y(tab: PlayTab) -> float:
    return FIELD_HEIGHT - HEADER_HEIGHT if _flipped(tab) else 0.0


def los_y(tab: PlayTab) -> float:
    return LOS_Y - HEADER_HEIGHT if _flipped(tab) else LOS_Y


def field_bounds(tab: PlayTab) -> Bounds:
    if _flipped(tab):
        return Bounds(FIELD_LEFT, FIELD_RIGHT, 0.0, FIELD_HEIGHT - HEADER_HEIGHT)
    return Bounds(FIELD_LEFT, FIELD_RIGHT, HEADER_HEIGHT, FIELD_HEIGHT - BOTTOM_PADDING)


def player_bounds(tab: PlayTab) -> Bounds:
    field = field_bounds(tab)
    return Bounds(
        field.min_x,
        field.max_x,
        field.min_y + PLAYER_SIZE,
        field.max_y - PLAYER_SIZE,
    )


class OffenseRole(str, Enum):
    QB = "qb"
    RB = "rb"
    SLOT_Y = "slotY"
    TE = "te"
    RECEIVER_Z = "receiverZ"
    RECEIVER_X = "receiverX"
    DEFAULT = "default"


class DefenseRole(str, Enum):
    LINEMAN = "lineman"
    LINEBACKER = "linebacker"
    SECONDARY = "secondary"


class RouteColor(str, Enum):
    PRIMARY = "primary"
    BLITZ = "blitz"
    MAN = "man"
    ZONE = "zone"
    BLOCKING = "blocking"
    RUN = "run"


class ShapeColor(str, Enum):
    PINK = "pink"
    BLUE = "blue"
    GREEN = "green"


OFFENSE_COLORS: Dict[OffenseRole, str] = {
    OffenseRole.QB: "#000000",
    OffenseRole.RB: "#39ff14",
    OffenseRole.SLOT_Y: "#eab308",
    OffenseRole.TE: "#f97316",
    OffenseRole.RECEIVER_Z: "#1d4ed8",
    OffenseRole.RECEIVER_X: "#ef4444",
    OffenseRole.DEFAULT: DEFAULT_COLOR,
}

DEFENSE_COLORS: Dict[DefenseRole, str] = {
    DefenseRole.LINEMAN: "#FFB6C1",
    DefenseRole.LINEBACKER: "#87CEEB",
    DefenseRole.SECONDARY: "#9333ea",
}

ROUTE_COLORS: Dict[RouteColor, str] = {
    RouteColor.PRIMARY: "#ef4444",
    RouteColor.BLITZ: "#ef4444",
    RouteColor.MAN: "#9ca3af",
    RouteColor.ZONE: "#06b6d4",
    RouteColor.BLOCKING: "#ffffff",
    RouteColor.RUN: "#000000",
}

SHAPE_COLORS: Dict[ShapeColor, str] = {
    ShapeColor.PINK: "#ec4899",
    ShapeColor.BLUE: "#1d4ed8",
    ShapeColor.GREEN: "#86efac",
}

SELECTION_COLOR = "#06b6d4"

OFFENSE_LABELS: Dict[OffenseRole, str] = {
    OffenseRole.QB: "QB",
    OffenseRole.RB: "RB",
    OffenseRole.RECEIVER_Z: "Z",
    OffenseRole.SLOT_Y: "Y",
    OffenseRole.RECEIVER_X: "X",
    OffenseRole.TE: "TE",
}

DEFENSE_LABELS: Dict[DefenseRole, str] = {
    DefenseRole.LINEMAN: "DL",
    DefenseRole.LINEBACKER: "LB",
    DefenseRole.SECONDARY: "DB",
}

# Labels the generator may emit that are not one of the colour roles above.
_EXTRA_OFFENSE_LABELS: Dict[str, OffenseRole] = {
    "WR": OffenseRole.RB,
    "C": OffenseRole.DEFAULT,
    "OL": OffenseRole.DEFAULT,
    "LG": OffenseRole.DEFAULT,
    "RG": OffenseRole.DEFAULT,
    "LT": OffenseRole.DEFAULT,
    "RT": OffenseRole.DEFAULT,
}

_EXTRA_DEFENSE_LABELS: Dict[str, DefenseRole] = {
    "DE": DefenseRole.LINEMAN,
    "DT": DefenseRole.LINEMAN,
    "CB": DefenseRole.SECONDARY,
    "S": DefenseRole.SECONDARY,
    "SS": DefenseRole.SECONDARY,
    "FS": DefenseRole.SECONDARY,
}


def role_for_color(side: Side, color: str) -> OffenseRole | DefenseRole | None:
    needle = color.strip().lower()
    table: Dict = OFFENSE_COLORS if side == Side.OFFENSE else DEFENSE_COLORS
    for role, value in table.items():
        if value.lower() == needle:
            return role
    return None


def label_for_color(side: Side, color: str) -> Optional[str]:
    role = role_for_color(side, color)
    if role is None:
        return None
    if side == Side.OFFENSE:
        return OFFENSE_LABELS.get(role)  # type: ignore[arg-type]
    return DEFENSE_LABELS.get(role)  # type: ignore[arg-type]


def color_for_label(side: Side, label: Optional[str]) -> str:
    """Role colour for *label*, falling back to the side's default colour."""

    key = (label or "").strip().upper()
    if side == Side.OFFENSE:
        for role, value in OFFENSE_LABELS.items():
            if value == key:
                return OFFENSE_COLORS[role]
        extra = _EXTRA_OFFENSE_LABELS.get(key)
        return OFFENSE_COLORS[extra] if extra else DEFAULT_COLOR
    for role, value in DEFENSE_LABELS.items():
        if value == key:
            return DEFENSE_COLORS[role]
    extra_role = _EXTRA_DEFENSE_LABELS.get(key)
    return DEFENSE_COLORS[extra_role or DefenseRole.LINEBACKER]


def resolve_color_key(color_key: str) -> str:
    """Resolve ``"offense.qb"`` style keys to a hex colour."""

    category, _, key = color_key.partition(".")
    try:
        if category == Side.OFFENSE.value:
            return OFFENSE_COLORS[OffenseRole(key)]
        if category == Side.DEFENSE.value:
            return DEFENSE_COLORS[DefenseRole(key)]
    except ValueError:
        pass
    return DEFAULT_COLOR


@dataclass(frozen=True)
class FormationPlayer:
    label: str
    x: float
    y: float
    color_key: str
    side: Side

    @property
    def color(self) -> str:
        return resolve_color_key(self.color_key)


@dataclass(frozen=True)
class Formation:
    name: str
    description: str
    players: Tuple[FormationPlayer, ...]


def _o(label: str, x: float, y: float, role: str) -> FormationPlayer:
    return FormationPlayer(label, x, y, f"offense.{role}", Side.OFFENSE)


def _d(label: str, x: float, y: float, role: str) -> FormationPlayer:
    return FormationPlayer(label, x, y, f"defense.{role}", Side.DEFENSE)


_S = SPACING_UNIT
_D = DEFENSE_SPACING

FORMATIONS: Dict[str, Dict[Side, Dict[str, Formation]]] = {
    "5v5": {
        Side.OFFENSE: {
            "spread": Formation(
                "5v5 Spread",
                "Shotgun QB with RB behind, 3 receivers spread wide",
                (
                    _o("QB", CENTER_X, QB_Y, "qb"),
                    _o("RB", CENTER_X, RB_Y, "rb"),
                    _o("Y", CENTER_X - 2 * _S, LOS_Y, "slotY"),
                    _o("Z", CENTER_X - 6 * _S, LOS_Y, "receiverZ"),
                    _o("X", CENTER_X + 6 * _S, LOS_Y, "receiverX"),
                ),
            ),
        },
        Side.DEFENSE: {
            "base": Formation(
                "5v5 Base",
                "3 LBs in W formation with 2 DBs deep",
                (
                    _d("LB", CENTER_X - 3.5 * _D, LOS_Y - 40, "linebacker"),
                    _d("LB", CENTER_X, LOS_Y - 40, "linebacker"),
                    _d("LB", CENTER_X + 3.5 * _D, LOS_Y - 40, "linebacker"),
                    _d("DB", CENTER_X - 1.8 * _D, LOS_Y - 100, "secondary"),
                    _d("DB", CENTER_X + 1.8 * _D, LOS_Y - 100, "secondary"),
                ),
            ),
        },
    },
    "7v7": {
        Side.OFFENSE: {
            "spread": Formation(
                "7v7 Spread",
                "Center, shotgun QB, RB, slot receivers and wide receivers",
                (
                    _o("C", CENTER_X, LOS_Y, "default"),
                    _o("QB", CENTER_X, QB_Y, "qb"),
                    _o("RB", CENTER_X, RB_Y, "rb"),
                    _o("Y", CENTER_X - 2.5 * _S, LOS_Y, "slotY"),
                    _o("TE", CENTER_X + 2.5 * _S, LOS_Y, "te"),
                    _o("Z", CENTER_X - 6.5 * _S, LOS_Y, "receiverZ"),
                    _o("X", CENTER_X + 6.5 * _S, LOS_Y, "receiverX"),
                ),
            ),
        },
        Side.DEFENSE: {
            "base": Formation(
                "7v7 Base",
                "1 DL, 3 LBs, 3 DBs",
                (
                    _d("DL", CENTER_X, LOS_Y - 20, "lineman"),
                    _d("LB", CENTER_X - 2.5 * _D, LOS_Y - 60, "linebacker"),
                    _d("LB", CENTER_X, LOS_Y - 60, "linebacker"),
                    _d("LB", CENTER_X + 2.5 * _D, LOS_Y - 60, "linebacker"),
                    _d("DB", CENTER_X - 3 * _D, LOS_Y - 120, "secondary"),
                    _d("DB", CENTER_X, LOS_Y - 120, "secondary"),
                    _d("DB", CENTER_X + 3 * _D, LOS_Y - 120, "secondary"),
                ),
            ),
        },
    },
    "9v9": {
        Side.OFFENSE: {
            "spread": Formation(
                "9v9 Spread",
                "3 interior linemen, 2 ends, 2 wideouts, QB and RB",
                (
                    _o("C", CENTER_X, LOS_Y, "default"),
                    _o("LG", CENTER_X - _S, LOS_Y, "default"),
                    _o("RG", CENTER_X + _S, LOS_Y, "default"),
                    _o("Y", CENTER_X - 3 * _S, LOS_Y, "slotY"),
                    _o("TE", CENTER_X + 3 * _S, LOS_Y, "te"),
                    _o("Z", CENTER_X - 7 * _S, LOS_Y, "receiverZ"),
                    _o("X", CENTER_X + 7 * _S, LOS_Y, "receiverX"),
                    _o("QB", CENTER_X, QB_Y, "qb"),
                    _o("RB", CENTER_X, RB_Y, "rb"),
                ),
            ),
        },
        Side.DEFENSE: {
            "base": Formation(
                "9v9 Base",
                "3 DL, 3 LBs, 3 DBs",
                (
                    _d("DL", CENTER_X - 1.5 * _D, LOS_Y - 20, "lineman"),
                    _d("DL", CENTER_X, LOS_Y - 20, "lineman"),
                    _d("DL", CENTER_X + 1.5 * _D, LOS_Y - 20, "lineman"),
                    _d("LB", CENTER_X - 2.5 * _D, LOS_Y - 60, "linebacker"),
                    _d("LB", CENTER_X, LOS_Y - 60, "linebacker"),
                    _d("LB", CENTER_X + 2.5 * _D, LOS_Y - 60, "linebacker"),
                    _d("DB", CENTER_X - 3.5 * _D, LOS_Y - 120, "secondary"),
                    _d("DB", CENTER_X, LOS_Y - 120, "secondary"),
                    _d("DB", CENTER_X + 3.5 * _D, LOS_Y - 120, "secondary"),
                ),
            ),
        },
    },
    "11v11": {
        Side.OFFENSE: {
            "spread": Formation(
                "11v11 Spread",
                "Full offensive line, TE, slot, 2 wideouts, QB and RB",
                (
                    _o("C", CENTER_X, LOS_Y, "default"),
                    _o("LG", CENTER_X - _S, LOS_Y, "default"),
                    _o("RG", CENTER_X + _S, LOS_Y, "default"),
                    _o("LT", CENTER_X - 2 * _S, LOS_Y, "default"),
                    _o("RT", CENTER_X + 2 * _S, LOS_Y, "default"),
                    _o("Y", CENTER_X - 3 * _S, LOS_Y, "slotY"),
                    _o("TE", CENTER_X + 3 * _S, LOS_Y, "te"),
                    _o("Z", CENTER_X - 7 * _S, LOS_Y, "receiverZ"),
                    _o("X", CENTER_X + 7 * _S, LOS_Y, "receiverX"),
                    _o("QB", CENTER_X, QB_Y, "qb"),
                    _o("RB", CENTER_X, RB_Y, "rb"),
                ),
            ),
        },
        Side.DEFENSE: {
            "base": Formation(
                "11v11 4-3",
                "4 DL (2 DE, 2 DT), 3 LBs, 2 CBs, 2 Safeties",
                (
                    _d("DE", CENTER_X - 2 * _D, LOS_Y - 20, "lineman"),
                    _d("DT", CENTER_X - 0.75 * _D, LOS_Y - 20, "lineman"),
                    _d("DT", CENTER_X + 0.75 * _D, LOS_Y - 20, "lineman"),
                    _d("DE", CENTER_X + 2 * _D, LOS_Y - 20, "lineman"),
                    _d("LB", CENTER_X - 2.5 * _D, LOS_Y - 60, "linebacker"),
                    _d("LB", CENTER_X, LOS_Y - 60, "linebacker"),
                    _d("LB", CENTER_X + 2.5 * _D, LOS_Y - 60, "linebacker"),
                    _d("CB", CENTER_X - 5 * _D, LOS_Y - 40, "secondary"),
                    _d("CB", CENTER_X + 5 * _D, LOS_Y - 40, "secondary"),
                    _d("SS", CENTER_X - 2 * _D, LOS_Y - 140, "secondary"),
                    _d("FS", CENTER_X + 2 * _D, LOS_Y - 140, "secondary"),
                ),
            ),
        },
    },
}


def default_variation(side: Side) -> str:
    return "spread" if side == Side.OFFENSE else "base"


def get_formation(
    size: str, side: Side | str, variation: Optional[str] = None
) -> Optional[Formation]:
    try:
        side = Side(side)
    except ValueError:
        LOGGER.warning("Unknown formation side '%s'", side)
        return None
    key = variation or default_variation(side)
    formation = FORMATIONS.get(size, {}).get(side, {}).get(key)
    if formation is None:
        LOGGER.warning("No formation for size=%s side=%s variation=%s", size, side.value, key)
    return formation


def formation_players(
    size: str, side: Side | str, variation: Optional[str] = None
) -> List[FormationPlayer]:
    formation = get_formation(size, side, variation)
    return list(formation.players) if formation else []


# ----------------------------------------------------------------------
# Snap-to-grid
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class SnapResult:
    position: float
    snapped: bool
    grid_point: Optional[float] = None


def calculate_snap(current: float, grid_points: Sequence[float], threshold: float) -> SnapResult:
    for point in grid_points:
        if abs(current - point) <= threshold:
            return SnapResult(point, True, point)
    return SnapResult(current, False)


def snap_grid_points() -> Tuple[List[float], List[float]]:
    x_points = [CENTER_X, LEFT_HASH_X, RIGHT_HASH_X, FIELD_LEFT, FIELD_RIGHT]
    y_points = [LOS_Y]
    y = HEADER_HEIGHT
    while y <= FIELD_HEIGHT:
        if y not in y_points:
            y_points.append(y)
        y += PIXELS_PER_YARD * 5
    return x_points, y_points


def snap_position(x: float, y: float, enabled: bool) -> Tuple[SnapResult, SnapResult]:
    if not enabled:
        return SnapResult(x, False), SnapResult(y, False)
    x_points, y_points = snap_grid_points()
    return (
        calculate_snap(x, x_points, SNAP_THRESHOLD),
        calculate_snap(y, y_points, SNAP_THRESHOLD),
    )


# ----------------------------------------------------------------------
# Game formats, situations and concepts
# ----------------------------------------------------------------------
SITUATIONAL_TAGS: Dict[str, List[str]] = {
    "5v5": ["No Run Zone (<5 yds)", "Midfield", "Backed Up"],
    "7v7": ["Red Zone (<20)", "Goal Line (<10)", "Open Field", "Backed Up"],
    "9v9": ["Red Zone (<20)", "Goal Line (<10)", "Open Field", "Backed Up"],
    "11v11": ["Red Zone", "Goal Line", "2-Minute", "4-Minute", "Backed Up"],
}


def detect_game_format(player_count: int, explicit_format: Optional[str] = None) -> str:
    if explicit_format and explicit_format in SITUATIONAL_TAGS:
        return explicit_format
    if player_count <= 12:
        return "5v5"
    if player_count <= 16:
        return "7v7"
    if player_count <= 20:
        return "9v9"
    return "11v11"


def game_format_for_roster(offense_count: int, defense_count: int) -> str:
    total = max(offense_count, defense_count)
    if total >= 11:
        return "11v11"
    if total >= 9:
        return "9v9"
    if total >= 7:
        return "7v7"
    return "5v5"


def situational_tags(game_format: str) -> List[str]:
    return list(SITUATIONAL_TAGS.get(game_format, []))


class Concept(str, Enum):
    RUN = "run"
    PASS = "pass"
    PLAY_ACTION = "play-action"
    RPO = "rpo"
    TRICK = "trick"


CONCEPT_LABELS: Dict[Concept, str] = {
    Concept.RUN: "Run",
    Concept.PASS: "Pass",
    Concept.PLAY_ACTION: "Play-Action",
    Concept.RPO: "RPO",
    Concept.TRICK: "Trick",
}


def concept_label(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        return CONCEPT_LABELS[Concept(value)]
    except ValueError:
        return None
