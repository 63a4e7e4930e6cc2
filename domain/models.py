from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Side(str, Enum):
    OFFENSE = "offense"
    DEFENSE = "defense"


class RouteType(str, Enum):
    PASS = "pass"
    RUN = "run"
    BLOCKING = "blocking"
    ASSIGNMENT = "assignment"


class RouteStyle(str, Enum):
    STRAIGHT = "straight"
    CURVED = "curved"
    LINEAR = "linear"
    AREA = "area"


class DefensiveAction(str, Enum):
    BLITZ = "blitz"
    MAN = "man"
    ZONE = "zone"


class ShapeType(str, Enum):
    CIRCLE = "circle"
    OVAL = "oval"
    RECTANGLE = "rectangle"


class ToolMode(str, Enum):
    """Active interaction mode gating which pointer handlers are live."""

    SELECT = "select"
    PLAYER = "player"
    ROUTE = "route"
    SHAPE = "shape"
    LABEL = "label"


class PlayTab(str, Enum):
    OFFENSE = "offense"
    DEFENSE = "defense"
    SPECIAL = "special"
    AI_BETA = "ai-beta"


class ResizeHandle(str, Enum):
    NW = "nw"
    NE = "ne"
    SW = "sw"
    SE = "se"


class _WireModel(BaseModel):
    """Base for entities stored in the play blob (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Point(_WireModel):
    """A location in field pixel space."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float

    def offset(self, dx: float, dy: float) -> "Point":
        return Point(x=self.x + dx, y=self.y + dy)


class Player(_WireModel):
    """A player token placed on the field."""

    id: str
    x: float
    y: float
    color: str = Field(..., description="Hex colour doubling as role indicator")
    label: Optional[str] = Field(default=None, max_length=2)
    side: Side = Side.OFFENSE

    @property
    def position(self) -> Point:
        return Point(x=self.x, y=self.y)


class Route(_WireModel):
    """Ordered point path owned by a player."""

    id: str
    player_id: str
    points: list[Point] = Field(default_factory=list)
    type: RouteType = RouteType.PASS
    style: RouteStyle = RouteStyle.STRAIGHT
    color: Optional[str] = None
    is_motion: bool = False
    priority: Optional[int] = Field(
        default=None, description="1 marks the primary target"
    )
    defensive_action: Optional[DefensiveAction] = None
    target_player_id: Optional[str] = Field(
        default=None, description="Player the route end is tethered to"
    )

    @property
    def is_tethered(self) -> bool:
        return self.target_player_id is not None and self.defensive_action in (
            DefensiveAction.MAN,
            DefensiveAction.BLITZ,
        )


class Shape(_WireModel):
    """Zone coverage region tethered to a player."""

    id: str
    player_id: str
    type: ShapeType = ShapeType.OVAL
    x: float
    y: float
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    color: str


class Football(_WireModel):
    id: str
    x: float
    y: float

    @property
    def position(self) -> Point:
        return Point(x=self.x, y=self.y)


class PlayMetadata(_WireModel):
    name: str = ""
    formation: str = ""
    concept: Optional[str] = None
    personnel: str = ""
    situation: Optional[str] = None
    game_format: Optional[str] = None
    pre_snap_motion: bool = False


class PlayData(_WireModel):
    """Persisted play record body, produced and consumed by the canvas."""

    players: list[Player] = Field(default_factory=list)
    routes: list[Route] = Field(default_factory=list)
    shapes: list[Shape] = Field(default_factory=list)
    footballs: list[Football] = Field(default_factory=list)
    metadata: PlayMetadata = Field(default_factory=PlayMetadata)
    play_action_football_id: Optional[str] = None

    @field_validator("play_action_football_id")
    @classmethod
    def validate_play_action_target(
        cls, value: Optional[str]
    ) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value
