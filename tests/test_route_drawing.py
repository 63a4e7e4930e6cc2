from __future__ import annotations

from canvas.route_drawing import DrawState, RouteDrawingMachine
from domain.models import DefensiveAction, Point, RouteStyle, RouteType


def _machine() -> RouteDrawingMachine:
    return RouteDrawingMachine(turn_angle_threshold=50, min_segment_length=20)


def test_straight_route_only_adds_vertices_at_turns() -> None:
    machine = _machine()
    machine.begin("p1", Point(x=100, y=100), RouteType.PASS, RouteStyle.STRAIGHT)
    for y in range(102, 141, 2):
        machine.extend(Point(x=100, y=y))
    for x in range(102, 161, 2):
        machine.extend(Point(x=x, y=140))

    draft = machine.finish()

    assert draft is not None
    assert draft.points == [Point(x=100, y=100), Point(x=100, y=140), Point(x=160, y=140)]
    assert machine.state == DrawState.IDLE


def test_three_sample_straight_route() -> None:
    machine = _machine()
    machine.begin("p1", Point(x=100, y=100), RouteType.PASS, RouteStyle.STRAIGHT)
    machine.extend(Point(x=100, y=140))
    machine.extend(Point(x=160, y=140))

    draft = machine.finish()

    assert draft is not None
    assert len(draft.points) == 3


def test_collinear_drag_yields_two_point_route() -> None:
    machine = _machine()
    machine.begin("p1", Point(x=100, y=100), RouteType.RUN, RouteStyle.STRAIGHT)
    for y in range(110, 200, 10):
        machine.extend(Point(x=100, y=y))

    draft = machine.finish()

    assert draft is not None
    assert draft.points == [Point(x=100, y=100), Point(x=100, y=190)]
    assert draft.route_type == RouteType.RUN


def test_route_with_fewer_than_two_points_is_discarded() -> None:
    machine = _machine()
    machine.begin("p1", Point(x=100, y=100), RouteType.PASS, RouteStyle.STRAIGHT)
    machine.extend(Point(x=100, y=100))

    assert machine.finish() is None
    assert not machine.is_drawing


def test_finish_without_begin_returns_nothing() -> None:
    assert _machine().finish() is None


def test_curved_route_samples_densely_and_simplifies() -> None:
    machine = _machine()
    machine.begin("p1", Point(x=100, y=100), RouteType.PASS, RouteStyle.CURVED)
    machine.extend(Point(x=100, y=101))
    assert machine.preview() == [Point(x=100, y=100)]
    for y in range(103, 131, 3):
        machine.extend(Point(x=100, y=y))

    draft = machine.finish()

    assert draft is not None
    assert draft.style == RouteStyle.CURVED
    assert draft.points[0] == Point(x=100, y=100)
    assert draft.points[-1] == Point(x=100, y=130)
    assert [p.y for p in draft.points] == [100, 106, 112, 118, 124, 130]


def test_pending_selection_activates_on_hover_over_owner() -> None:
    machine = _machine()
    machine.choose_type("p1", RouteType.ASSIGNMENT, DefensiveAction.MAN)

    assert not machine.pointer_enter("p1", Point(x=10, y=10))

    machine.choose_style(RouteStyle.CURVED)
    assert machine.pending is not None and machine.pending.armed
    assert not machine.pointer_enter("p2", Point(x=50, y=50))
    assert machine.pointer_enter("p1", Point(x=10, y=10))

    assert machine.is_drawing
    assert machine.player_id == "p1"
    assert machine.style == RouteStyle.CURVED
    assert machine.route_type == RouteType.ASSIGNMENT
    assert machine.pending is None


def test_choose_style_without_type_is_ignored() -> None:
    machine = _machine()
    assert machine.choose_style(RouteStyle.STRAIGHT) is None


def test_cancel_clears_drawing_and_pending_selection() -> None:
    machine = _machine()
    machine.choose_type("p1", RouteType.PASS)
    machine.begin("p1", Point(x=0, y=0), RouteType.PASS, RouteStyle.STRAIGHT)
    machine.choose_type("p1", RouteType.PASS)
    machine.cancel()

    assert machine.pending is None
    assert not machine.is_drawing
    assert machine.preview() == []
