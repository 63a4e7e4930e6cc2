from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

LOGGER = logging.getLogger("domain.settings")

GENERATE_URL_ENV = "PLAY_DESIGNER_GENERATE_URL"
GENERATE_TIMEOUT_ENV = "PLAY_DESIGNER_GENERATE_TIMEOUT"


class DesignerSettings(BaseModel):
    """Tunable interaction thresholds and service endpoints for the designer."""

    long_press_ms: float = Field(280.0, gt=0, description="Hold time before the context menu opens")
    drag_threshold: float = Field(8.0, ge=0, description="Pixels of movement that promote a drag")
    turn_angle_threshold: float = Field(50.0, ge=0, le=180)
    min_segment_length: float = Field(20.0, ge=0)
    curve_sample_distance: float = Field(2.0, ge=0)
    curved_simplify_tolerance: float = Field(5.0, ge=0)
    min_shape_size: float = Field(20.0, gt=0)
    history_limit: int = Field(50, ge=1)
    snap_enabled: bool = False
    generate_url: str = "http://localhost:5000/api/generate-play"
    generate_timeout: float = Field(60.0, gt=0, description="Seconds before a generation request is abandoned")


def load_settings(path: Optional[Path] = None) -> DesignerSettings:
    """Build settings from an optional JSON file plus environment overrides.

    An unreadable or invalid file is logged and ignored so the designer always
    starts with usable defaults.
    """

    data: dict[str, object] = {}
    if path is not None and path.exists():
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.warning("Unable to read designer settings %s: %s", path, exc)
            raw = {}
        if isinstance(raw, dict):
            data.update(raw)
        else:
            LOGGER.warning("Ignoring designer settings %s: expected an object", path)

    url = os.environ.get(GENERATE_URL_ENV)
    if url:
        data["generate_url"] = url
    timeout = os.environ.get(GENERATE_TIMEOUT_ENV)
    if timeout:
        data["generate_timeout"] = timeout

    try:
        return DesignerSettings.model_validate(data)
    except ValidationError as exc:
        LOGGER.warning("Invalid designer settings, using defaults: %s", exc)
        return DesignerSettings()


def save_settings(settings: DesignerSettings, path: Path) -> bool:
    """Persist *settings* as JSON. Returns ``True`` on success."""

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(settings.model_dump(mode="json"), indent=2), encoding="utf-8")
        return True
    except OSError as exc:  # pragma: no cover
        LOGGER.warning("Unable to write designer settings %s: %s", path, exc)
        return False
