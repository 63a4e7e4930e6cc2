from __future__ import annotations

import itertools

from canvas.shapes import (
    begin_drag,
    contains,
    drag_shape,
    fit_shape,
    hit_handle,
    resize_shape,
    shape_from_corners,
)
from domain.football_config import field_bounds
from domain.models import PlayTab, Point, ResizeHandle, Shape, ShapeType

BOUNDS = field_bounds(PlayTab.OFFENSE)


def _shape(**overrides: float) -> Shape:
    values = {"x": 100.0, "y": 100.0, "width": 100.0, "height": 60.0}
    values.update(overrides)
    return Shape(id="s1", player_id="p1", type=ShapeType.OVAL, color="#06b6d4", **values)


def test_resize_from_nw_keeps_opposite_corner_fixed() -> None:
    resized = resize_shape(_shape(), ResizeHandle.NW, Point(x=80, y=90), BOUNDS)

    assert (resized.x, resized.y) == (80, 90)
    assert resized.x + resized.width == 200
    assert resized.y + resized.height == 160


def test_resize_from_se_enforces_minimum_size() -> None:
    resized = resize_shape(_shape(), ResizeHandle.SE, Point(x=105, y=105), BOUNDS)

    assert (resized.x, resized.y) == (100, 100)
    assert resized.width == 20
    assert resized.height == 20


def test_resize_nw_past_opposite_corner_stops_at_minimum() -> None:
    resized = resize_shape(_shape(), ResizeHandle.NW, Point(x=190, y=150), BOUNDS)

    assert resized.width == 20
    assert resized.height == 20
    assert resized.x + resized.width == 200


def test_resize_is_clamped_to_field() -> None:
    resized = resize_shape(_shape(), ResizeHandle.NE, Point(x=900, y=-50), BOUNDS)

    assert resized.x + resized.width == BOUNDS.max_x
    assert resized.y == BOUNDS.min_y


def test_drag_offsets_by_grab_point_and_clamps() -> None:
    shape = _shape()
    drag = begin_drag(shape, Point(x=110, y=110))

    moved = drag_shape(shape, drag, Point(x=210, y=150), BOUNDS)
    assert (moved.x, moved.y) == (200, 140)

    pinned = drag_shape(shape, drag, Point(x=5, y=5), BOUNDS)
    assert (pinned.x, pinned.y) == (BOUNDS.min_x, BOUNDS.min_y)


def test_any_drag_or_resize_stays_in_bounds() -> None:
    shape = _shape()
    drag = begin_drag(shape, Point(x=150, y=130))
    pointers = [Point(x=x, y=y) for x, y in itertools.product((-200, 0, 350, 700, 1200), (-100, 60, 250, 500))]
    for pointer in pointers:
        candidates = [drag_shape(shape, drag, pointer, BOUNDS)]
        candidates.extend(resize_shape(shape, handle, pointer, BOUNDS) for handle in ResizeHandle)
        for result in candidates:
            assert BOUNDS.min_x <= result.x
            assert result.x + result.width <= BOUNDS.max_x
            assert BOUNDS.min_y <= result.y
            assert result.y + result.height <= BOUNDS.max_y
            assert result.width >= 20 and result.height >= 20


def test_fit_shape_pulls_shape_back_inside() -> None:
    fitted = fit_shape(_shape(x=650, y=370, width=10, height=10), BOUNDS)

    assert fitted.width == 20 and fitted.height == 20
    assert fitted.x == BOUNDS.max_x - 20
    assert fitted.y == BOUNDS.max_y - 20


def test_handles_and_containment() -> None:
    shape = _shape()

    assert hit_handle(shape, Point(x=102, y=98)) == ResizeHandle.NW
    assert hit_handle(shape, Point(x=200, y=160)) == ResizeHandle.SE
    assert hit_handle(shape, Point(x=150, y=130)) is None
    assert contains(shape, Point(x=150, y=130))
    assert not contains(shape, Point(x=250, y=130))


def test_shape_from_corners_normalises_drag_direction() -> None:
    shape = shape_from_corners(
        "s2", "p1", Point(x=300, y=200), Point(x=250, y=150), ShapeType.RECTANGLE, "#ec4899", BOUNDS
    )

    assert (shape.x, shape.y, shape.width, shape.height) == (250, 150, 50, 50)
    assert shape.type == ShapeType.RECTANGLE

    tiny = shape_from_corners(
        "s3", "p1", Point(x=300, y=200), Point(x=302, y=201), ShapeType.CIRCLE, "#ec4899", BOUNDS
    )
    assert tiny.width == 20 and tiny.height == 20
