from __future__ import annotations

import pytest
from pydantic import ValidationError

from domain.models import DefensiveAction, PlayData, Player, Point, Route, Shape


def test_models_accept_camel_case_and_field_names() -> None:
    by_alias = Route.model_validate({"id": "r1", "playerId": "p1", "isMotion": True})
    by_name = Route(id="r1", player_id="p1", is_motion=True)

    assert by_alias == by_name


def test_player_label_is_at_most_two_characters() -> None:
    with pytest.raises(ValidationError):
        Player(id="p1", x=0, y=0, color="#000000", label="QBX")

    assert Player(id="p1", x=10, y=20, color="#000000").position == Point(x=10, y=20)


def test_route_tethering() -> None:
    man = Route(id="r1", player_id="d1", defensive_action=DefensiveAction.MAN, target_player_id="o1")
    zone = Route(id="r2", player_id="d1", defensive_action=DefensiveAction.ZONE, target_player_id="o1")
    loose = Route(id="r3", player_id="d1", defensive_action=DefensiveAction.BLITZ)

    assert man.is_tethered
    assert not zone.is_tethered
    assert not loose.is_tethered


def test_shapes_need_positive_size() -> None:
    with pytest.raises(ValidationError):
        Shape(id="s1", player_id="d1", x=0, y=0, width=0, height=10, color="#000000")


def test_blank_play_action_id_is_cleared() -> None:
    assert PlayData(play_action_football_id="").play_action_football_id is None
    assert PlayData(play_action_football_id="f1").play_action_football_id == "f1"


def test_points_are_immutable() -> None:
    point = Point(x=1, y=2)
    with pytest.raises(ValidationError):
        point.x = 5  # type: ignore[misc]
    assert point.offset(2, -1) == Point(x=3, y=1)
