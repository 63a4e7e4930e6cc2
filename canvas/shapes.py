from __future__ import annotations

from dataclasses import dataclass

from canvas.geometry import clamp
from domain.football_config import Bounds
from domain.models import Point, ResizeHandle, Shape, ShapeType

MIN_SHAPE_SIZE = 20.0
HANDLE_RADIUS = 6.0
DEFAULT_ZONE_WIDTH = 100.0
DEFAULT_ZONE_HEIGHT = 60.0


@dataclass(frozen=True)
class ShapeDrag:
    shape_id: str
    offset_x: float
    offset_y: float


@dataclass(frozen=True)
class ShapeResize:
    shape_id: str
    handle: ResizeHandle


def begin_drag(shape: Shape, pointer: Point) -> ShapeDrag:
    return ShapeDrag(shape.id, pointer.x - shape.x, pointer.y - shape.y)


def drag_shape(shape: Shape, drag: ShapeDrag, pointer: Point, bounds: Bounds) -> Shape:
    """Move the shape so its top-left follows the pointer, kept inside *bounds*."""

    x = clamp(pointer.x - drag.offset_x, bounds.min_x, bounds.max_x - shape.width)
    y = clamp(pointer.y - drag.offset_y, bounds.min_y, bounds.max_y - shape.height)
    return shape.model_copy(update={"x": x, "y": y})


def resize_shape(
    shape: Shape,
    handle: ResizeHandle,
    pointer: Point,
    bounds: Bounds,
    *,
    min_size: float = MIN_SHAPE_SIZE,
) -> Shape:
    """Resize from a corner handle while the opposite corner stays fixed."""

    left, top = shape.x, shape.y
    right, bottom = shape.x + shape.width, shape.y + shape.height

    if handle in (ResizeHandle.NW, ResizeHandle.SW):
        left = clamp(pointer.x, bounds.min_x, right - min_size)
    else:
        right = clamp(pointer.x, left + min_size, bounds.max_x)
    if handle in (ResizeHandle.NW, ResizeHandle.NE):
        top = clamp(pointer.y, bounds.min_y, bottom - min_size)
    else:
        bottom = clamp(pointer.y, top + min_size, bounds.max_y)

    return shape.model_copy(
        update={"x": left, "y": top, "width": right - left, "height": bottom - top}
    )


def fit_shape(shape: Shape, bounds: Bounds, *, min_size: float = MIN_SHAPE_SIZE) -> Shape:
    """Enforce the minimum size and pull the shape back inside *bounds*."""

    width = min(max(shape.width, min_size), bounds.max_x - bounds.min_x)
    height = min(max(shape.height, min_size), bounds.max_y - bounds.min_y)
    x = clamp(shape.x, bounds.min_x, bounds.max_x - width)
    y = clamp(shape.y, bounds.min_y, bounds.max_y - height)
    return shape.model_copy(update={"x": x, "y": y, "width": width, "height": height})


def handle_positions(shape: Shape) -> dict[ResizeHandle, Point]:
    right = shape.x + shape.width
    bottom = shape.y + shape.height
    return {
        ResizeHandle.NW: Point(x=shape.x, y=shape.y),
        ResizeHandle.NE: Point(x=right, y=shape.y),
        ResizeHandle.SW: Point(x=shape.x, y=bottom),
        ResizeHandle.SE: Point(x=right, y=bottom),
    }


def hit_handle(shape: Shape, pointer: Point, radius: float = HANDLE_RADIUS) -> ResizeHandle | None:
    for handle, corner in handle_positions(shape).items():
        if abs(corner.x - pointer.x) <= radius and abs(corner.y - pointer.y) <= radius:
            return handle
    return None


def contains(shape: Shape, pointer: Point) -> bool:
    return (
        shape.x <= pointer.x <= shape.x + shape.width
        and shape.y <= pointer.y <= shape.y + shape.height
    )


def shape_from_corners(
    shape_id: str,
    player_id: str,
    start: Point,
    end: Point,
    shape_type: ShapeType,
    color: str,
    bounds: Bounds,
    *,
    min_size: float = MIN_SHAPE_SIZE,
) -> Shape:
    """Build a shape spanning two drag corners, at least *min_size* square."""

    left, right = sorted((start.x, end.x))
    top, bottom = sorted((start.y, end.y))
    shape = Shape(
        id=shape_id,
        player_id=player_id,
        type=shape_type,
        x=left,
        y=top,
        width=max(right - left, min_size),
        height=max(bottom - top, min_size),
        color=color,
    )
    return fit_shape(shape, bounds, min_size=min_size)
