from __future__ import annotations

import json
import threading
from typing import Any, Dict

import httpx
import pytest
from pydantic import ValidationError

from canvas.generation import (
    GenerationRequest,
    PlayGenerationClient,
    PlayGenerationService,
    normalize_generated_play,
)
from domain.errors import PlayGenerationError
from domain.football_config import (
    CENTER_X,
    DEFENSE_COLORS,
    LOS_Y,
    OFFENSE_COLORS,
    DefenseRole,
    OffenseRole,
    los_y,
)
from domain.models import PlayTab, Point, RouteStyle, RouteType, Side

URL = "http://designer.test/api/generate-play"


def _client(handler) -> PlayGenerationClient:
    return PlayGenerationClient(URL, timeout=5, transport=httpx.MockTransport(handler))


def test_request_requires_prompt_or_image() -> None:
    with pytest.raises(ValidationError):
        GenerationRequest(prompt="   ")

    request = GenerationRequest(image="data:image/png;base64,AAAA", situation="Red Zone")
    assert request.image == "AAAA"
    assert request.payload() == {"image": "AAAA", "situation": "Red Zone"}


def test_client_posts_request_and_returns_payload() -> None:
    seen: Dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"players": []})

    payload = _client(handler).generate(GenerationRequest(prompt="four verticals"))

    assert payload == {"players": []}
    assert seen == {"method": "POST", "body": {"prompt": "four verticals"}}


@pytest.mark.parametrize(
    "response, message",
    [
        (httpx.Response(500, json={"error": "model unavailable"}), "model unavailable"),
        (httpx.Response(400, text="bad"), "status 400"),
        (httpx.Response(200, content=b"not json"), "invalid JSON"),
        (httpx.Response(200, json=[1, 2, 3]), "unexpected payload"),
    ],
)
def test_client_failures_raise_generation_error(response: httpx.Response, message: str) -> None:
    with pytest.raises(PlayGenerationError) as excinfo:
        _client(lambda request: response).generate(GenerationRequest(prompt="x"))

    assert message in str(excinfo.value)


def test_client_transport_errors_raise_generation_error() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    def stall(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(PlayGenerationError, match="request failed"):
        _client(refuse).generate(GenerationRequest(prompt="x"))
    with pytest.raises(PlayGenerationError, match="timed out"):
        _client(stall).generate(GenerationRequest(prompt="x"))


def test_error_status_code_is_kept() -> None:
    with pytest.raises(PlayGenerationError) as excinfo:
        _client(lambda request: httpx.Response(503)).generate(GenerationRequest(prompt="x"))

    assert excinfo.value.status_code == 503


def test_normalize_defaults_missing_player_fields() -> None:
    data = normalize_generated_play(
        {
            "players": [
                {"label": "QB"},
                {"x": 100, "y": 150, "side": "defense", "label": "CB"},
                {"x": "left", "y": None, "label": "Slot"},
                "not a player",
            ]
        },
        PlayTab.OFFENSE,
    )

    qb, corner, slot = data.players
    assert (qb.x, qb.y) == (CENTER_X, LOS_Y)
    assert qb.side == Side.OFFENSE
    assert qb.color == OFFENSE_COLORS[OffenseRole.QB]
    assert corner.side == Side.DEFENSE
    assert corner.color == DEFENSE_COLORS[DefenseRole.SECONDARY]
    assert slot.label == "Sl"
    assert (slot.x, slot.y) == (CENTER_X, LOS_Y)
    assert len({p.id for p in data.players}) == 3


def test_normalize_remaps_route_owners_and_drops_bad_routes(caplog: pytest.LogCaptureFixture) -> None:
    payload = {
        "players": [
            {"id": "wr-1", "label": "X", "x": 500, "y": 284},
            {"label": "RB", "x": 347, "y": 340},
        ],
        "routes": [
            {"playerId": "wr-1", "points": [{"x": 0, "y": 0}, {"x": 500, "y": 200}], "style": "wiggly"},
            {"playerId": "player-1", "points": [{"x": 347, "y": 340}, {"x": 400, "y": 300}], "type": "run"},
            {"playerId": "ghost", "points": [{"x": 1, "y": 1}, {"x": 2, "y": 2}]},
            {"playerId": "wr-1", "points": [{"x": 1, "y": 1}, {"x": None, "y": 2}]},
        ],
    }

    data = normalize_generated_play(payload, PlayTab.OFFENSE)

    receiver, back = data.players
    assert len(data.routes) == 2
    first, second = data.routes
    assert first.player_id == receiver.id
    assert first.points[0] == receiver.position
    assert first.points[-1] == Point(x=500, y=200)
    assert first.style == RouteStyle.STRAIGHT
    assert second.player_id == back.id
    assert second.type == RouteType.RUN
    assert "unknown player ghost" in caplog.text
    assert "1 point(s)" in caplog.text


def test_normalize_mechanics() -> None:
    data = normalize_generated_play(
        {"players": [], "mechanics": {"hasPlayAction": True, "preSnapMotion": True}},
        PlayTab.DEFENSE,
    )

    assert len(data.footballs) == 1
    assert data.footballs[0].y == los_y(PlayTab.DEFENSE)
    assert data.play_action_football_id == data.footballs[0].id
    assert data.metadata.pre_snap_motion

    plain = normalize_generated_play({"players": "oops", "footballs": [{"x": 300}]}, PlayTab.OFFENSE)
    assert plain.players == []
    assert plain.play_action_football_id is None
    assert (plain.footballs[0].x, plain.footballs[0].y) == (300, LOS_Y)


class _BlockingClient:
    def __init__(self) -> None:
        self.release = threading.Event()

    def generate(self, request: GenerationRequest) -> Dict[str, Any]:
        self.release.wait(timeout=5)
        return {"players": [], "prompt": request.prompt}


def test_service_allows_one_request_in_flight() -> None:
    client = _BlockingClient()
    service = PlayGenerationService(client)  # type: ignore[arg-type]
    try:
        first = service.submit(GenerationRequest(prompt="one"))
        assert first is not None
        assert service.busy
        assert service.submit(GenerationRequest(prompt="two")) is None

        client.release.set()
        assert first.result(timeout=5) == {"players": [], "prompt": "one"}
        assert not service.busy

        again = service.submit(GenerationRequest(prompt="three"))
        assert again is not None
        assert again.result(timeout=5)["prompt"] == "three"
    finally:
        client.release.set()
        service.shutdown()


def test_malformed_url_raises_generation_error() -> None:
    client = PlayGenerationClient(
        "http://designer.test:port/api/generate-play",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
    )

    with pytest.raises(PlayGenerationError, match="request failed"):
        client.generate(GenerationRequest(prompt="x"))


def test_normalize_reads_string_flags_and_clamps_footballs() -> None:
    data = normalize_generated_play(
        {
            "players": [{"label": "X", "x": 500, "y": 284}],
            "routes": [
                {
                    "playerId": "player-0",
                    "points": [{"x": 500, "y": 300}, {"x": 500, "y": 200}],
                    "isMotion": "false",
                }
            ],
            "footballs": [{"x": -40, "y": 900}],
            "mechanics": {"hasPlayAction": "false", "preSnapMotion": "true"},
        },
        PlayTab.OFFENSE,
    )

    assert not data.routes[0].is_motion
    assert (data.footballs[0].x, data.footballs[0].y) == (27, 380)
    assert data.play_action_football_id is None
    assert data.metadata.pre_snap_motion
