from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from pydantic import ValidationError

from domain.errors import PlayDataError
from domain.models import PlayData

LOGGER = logging.getLogger("domain.play_data")


def _sanitize_error_context(errors: List[Dict[str, Any]]) -> List[Dict[str, object]]:
    sanitized: List[Dict[str, object]] = []
    for error in errors:
        ctx = error.get("ctx")
        if isinstance(ctx, dict):
            error = {**error, "ctx": {key: str(value) for key, value in ctx.items()}}
        sanitized.append(error)
    return sanitized


def _migrate_legacy(blob: Mapping[str, Any]) -> Dict[str, Any]:
    payload = dict(blob)
    footballs = payload.get("footballs")
    if not isinstance(footballs, list):
        footballs = []
    legacy = payload.pop("football", None)
    if not footballs and isinstance(legacy, dict) and "x" in legacy and "y" in legacy:
        footballs = [{"id": "football-legacy", "x": legacy["x"], "y": legacy["y"]}]

    global_play_action = bool(payload.pop("isPlayAction", False))
    payload.pop("playAction", None)
    play_action_id = payload.get("playActionFootballId")

    cleaned: List[Dict[str, Any]] = []
    for index, football in enumerate(footballs):
        if not isinstance(football, dict):
            continue
        football = dict(football)
        football.setdefault("id", f"football-{index}")
        flagged = football.pop("hasPlayAction", None)
        if play_action_id is None and (flagged or (flagged is None and global_play_action)):
            play_action_id = football["id"]
        cleaned.append(football)

    payload["footballs"] = cleaned
    payload["playActionFootballId"] = play_action_id
    # Overlay entities are a preview concern, not part of the editable play.
    payload.pop("overlayPlayers", None)
    payload.pop("overlayRoutes", None)
    return payload


def load_play_data(blob: Mapping[str, Any]) -> PlayData:
    """Parse a stored play blob, upgrading the legacy single-football shape."""

    if not isinstance(blob, Mapping):
        raise PlayDataError(
            [{"loc": [], "msg": "play data must be an object", "type": "type_error.dict"}]
        )
    payload = _migrate_legacy(blob)
    try:
        return PlayData.model_validate(payload)
    except ValidationError as exc:
        LOGGER.warning("Rejected play data: %s", exc)
        raise PlayDataError(_sanitize_error_context(exc.errors())) from exc


def dump_play_data(data: PlayData) -> Dict[str, Any]:
    return data.model_dump(mode="json", by_alias=True)


__all__ = [
    "dump_play_data",
    "load_play_data",
]
