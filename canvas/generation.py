from __future__ import annotations

import itertools
import logging
import re
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, List, Mapping, Optional

import httpx
from pydantic import BaseModel, field_validator, model_validator

from domain.errors import PlayGenerationError
from domain.football_config import CENTER_X, LOS_Y, color_for_label, field_bounds, los_y, player_bounds
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
    Side,
)

LOGGER = logging.getLogger("canvas.generation")

_DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")
_ID_COUNTER = itertools.count(1)


class GenerationRequest(BaseModel):
    """Body posted to the play generation endpoint."""

    prompt: Optional[str] = None
    image: Optional[str] = None
    situation: Optional[str] = None

    @field_validator("prompt", "situation")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @field_validator("image")
    @classmethod
    def _strip_data_url(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        return _DATA_URL_PREFIX.sub("", value)

    @model_validator(mode="after")
    def _require_input(self) -> "GenerationRequest":
        if self.prompt is None and self.image is None:
            raise ValueError("A prompt or an image is required")
        return self

    def payload(self) -> Dict[str, str]:
        return self.model_dump(exclude_none=True)


class PlayGenerationClient:
    """Blocking HTTP client for the play generation endpoint."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._transport = transport

    def generate(self, request: GenerationRequest) -> Dict[str, Any]:
        try:
            with httpx.Client(timeout=httpx.Timeout(self.timeout), transport=self._transport) as client:
                response = client.post(self.url, json=request.payload())
        except httpx.TimeoutException as exc:
            raise PlayGenerationError(f"Play generation timed out after {self.timeout:g}s") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise PlayGenerationError(f"Play generation request failed: {exc}") from exc

        if response.status_code >= 400:
            raise PlayGenerationError(_error_message(response), status_code=response.status_code)
        try:
            body = response.json()
        except ValueError as exc:
            raise PlayGenerationError("Play generation returned invalid JSON", response.status_code) from exc
        if not isinstance(body, dict):
            raise PlayGenerationError("Play generation returned an unexpected payload", response.status_code)
        return body


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Play generation failed with status {response.status_code}"


class PlayGenerationService:
    """Runs generation requests on a single background worker.

    Only one request may be in flight; there is no cancellation, the client
    timeout bounds how long a request can stay pending.
    """

    def __init__(self, client: PlayGenerationClient) -> None:
        self._client = client
        self._executor = ThreadPoolExecutor(max_workers=1)
        self._pending: Future[Dict[str, Any]] | None = None

    @property
    def busy(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def submit(self, request: GenerationRequest) -> Future[Dict[str, Any]] | None:
        if self.busy:
            LOGGER.warning("Ignoring play generation request while another is pending")
            return None
        future = self._executor.submit(self._client.generate, request)
        self._pending = future
        return future

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)


# ----------------------------------------------------------------------
# Response normalisation
# ----------------------------------------------------------------------
def _fresh_id(prefix: str) -> str:
    return f"{prefix}-gen-{next(_ID_COUNTER)}"


def _number(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _enum_value(enum_cls: Any, value: Any, default: Any) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        if value is not None:
            LOGGER.warning(
                "Unknown %s '%s', using %s", enum_cls.__name__, value, getattr(default, "value", default)
            )
        return default


def _items(payload: Mapping[str, Any], key: str) -> List[Mapping[str, Any]]:
    raw = payload.get(key)
    if raw is None:
        return []
    if not isinstance(raw, list):
        LOGGER.warning("Ignoring generated '%s': expected a list", key)
        return []
    entries = [item for item in raw if isinstance(item, Mapping)]
    if len(entries) != len(raw):
        LOGGER.warning("Dropped %d malformed generated %s", len(raw) - len(entries), key)
    return entries


def _normalize_player(raw: Mapping[str, Any], tab: PlayTab) -> Player:
    side = _enum_value(Side, raw.get("side"), Side.OFFENSE)
    label_value = raw.get("label")
    label = str(label_value).strip()[:2] if label_value else None
    color = raw.get("color") if isinstance(raw.get("color"), str) and raw.get("color") else None
    position = player_bounds(tab).clamp_point(
        _number(raw.get("x"), CENTER_X),
        _number(raw.get("y"), LOS_Y),
    )
    return Player(
        id=_fresh_id("player"),
        x=position.x,
        y=position.y,
        color=color or color_for_label(side, label),
        label=label or None,
        side=side,
    )


def _resolve_owner(raw_owner: Any, id_map: Dict[str, str], ordered: List[str]) -> Optional[str]:
    if raw_owner is None:
        return None
    key = str(raw_owner)
    if key in id_map:
        return id_map[key]
    # Generated ids follow "player-<n>"; fall back to the trailing index.
    suffix = key.rsplit("-", 1)[-1]
    if suffix.isdigit() and int(suffix) < len(ordered):
        return ordered[int(suffix)]
    return None


def _route_points(raw: Any) -> List[Point]:
    points: List[Point] = []
    if not isinstance(raw, list):
        return points
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        x, y = item.get("x"), item.get("y")
        if x is None or y is None:
            continue
        try:
            points.append(Point(x=float(x), y=float(y)))
        except (TypeError, ValueError):
            continue
    return points


def normalize_generated_play(payload: Mapping[str, Any], tab: PlayTab) -> PlayData:
    """Turn an untrusted generation response into valid canvas state.

    Every field is defaulted rather than rejected, so a partially bad response
    still yields a usable play. Routes that cannot be attached to a player or
    that have fewer than two usable points are dropped.
    """

    players: List[Player] = []
    id_map: Dict[str, str] = {}
    for index, raw in enumerate(_items(payload, "players")):
        player = _normalize_player(raw, tab)
        players.append(player)
        original = raw.get("id")
        id_map[str(original) if original is not None else f"player-{index}"] = player.id
    ordered = [player.id for player in players]
    owners = {player.id: player for player in players}

    routes: List[Route] = []
    for raw in _items(payload, "routes"):
        owner_id = _resolve_owner(raw.get("playerId"), id_map, ordered)
        if owner_id is None:
            LOGGER.warning("Dropping generated route for unknown player %s", raw.get("playerId"))
            continue
        points = _route_points(raw.get("points"))
        if len(points) < 2:
            LOGGER.warning("Dropping generated route for %s with %d point(s)", owner_id, len(points))
            continue
        owner = owners[owner_id]
        points[0] = owner.position
        action = raw.get("defensiveAction")
        routes.append(
            Route(
                id=_fresh_id("route"),
                player_id=owner_id,
                points=points,
                type=_enum_value(RouteType, raw.get("type"), RouteType.PASS),
                style=_enum_value(RouteStyle, raw.get("style"), RouteStyle.STRAIGHT),
                color=raw.get("color") if isinstance(raw.get("color"), str) else None,
                is_motion=_flag(raw.get("isMotion")),
                priority=1 if raw.get("priority") == 1 else None,
                defensive_action=_enum_value(DefensiveAction, action, None) if action else None,
            )
        )

    footballs: List[Football] = []
    for raw in _items(payload, "footballs"):
        spot = field_bounds(tab).clamp_point(
            _number(raw.get("x"), CENTER_X),
            _number(raw.get("y"), los_y(tab)),
        )
        footballs.append(Football(id=_fresh_id("football"), x=spot.x, y=spot.y))

    mechanics = payload.get("mechanics")
    if not isinstance(mechanics, Mapping):
        mechanics = {}
    play_action_id: Optional[str] = None
    if _flag(mechanics.get("hasPlayAction")):
        if not footballs:
            footballs.append(Football(id=_fresh_id("football"), x=CENTER_X, y=los_y(tab)))
        play_action_id = footballs[0].id

    metadata = PlayMetadata(pre_snap_motion=_flag(mechanics.get("preSnapMotion")))
    LOGGER.debug(
        "Normalized generated play: %d players, %d routes, %d footballs",
        len(players),
        len(routes),
        len(footballs),
    )
    return PlayData(
        players=players,
        routes=routes,
        shapes=[],
        footballs=footballs,
        metadata=metadata,
        play_action_football_id=play_action_id,
    )
