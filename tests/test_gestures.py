from __future__ import annotations

from canvas.gestures import GestureDisambiguator, GestureOutcome, TokenKind
from domain.models import Point


def _pressed(kind: TokenKind = TokenKind.PLAYER) -> GestureDisambiguator:
    gestures = GestureDisambiguator(long_press_ms=280, drag_threshold=8)
    gestures.pointer_down("p1", Point(x=100, y=100), Point(x=98, y=98), 0.0, kind=kind)
    return gestures


def test_release_before_timer_is_a_click() -> None:
    gestures = _pressed()

    assert gestures.pointer_up(0.1) == GestureOutcome.CLICK
    assert gestures.consume_click()
    assert not gestures.in_gesture


def test_long_press_opens_menu_and_suppresses_one_click() -> None:
    gestures = _pressed()

    assert gestures.poll(0.1) is None
    press = gestures.poll(0.3)
    assert press is not None
    assert press.target_id == "p1"
    assert press.pointer == Point(x=100, y=100)

    assert gestures.pointer_move(Point(x=200, y=200), 0.4) is None
    assert gestures.active_drag is None
    assert gestures.pointer_up(0.5) == GestureOutcome.MENU
    assert not gestures.consume_click()
    assert gestures.consume_click()


def test_small_movement_does_not_start_a_drag() -> None:
    gestures = _pressed()

    assert gestures.pointer_move(Point(x=105, y=100), 0.05) is None
    assert gestures.active_drag is None
    assert gestures.pending is not None


def test_movement_past_threshold_promotes_drag_with_offset() -> None:
    gestures = _pressed()

    position = gestures.pointer_move(Point(x=110, y=100), 0.1)

    assert position == Point(x=108, y=98)
    assert gestures.active_drag is not None
    assert gestures.poll(1.0) is None
    assert gestures.pointer_move(Point(x=150, y=150), 1.1) == Point(x=148, y=148)
    assert gestures.pointer_up(1.2) == GestureOutcome.DRAG
    assert gestures.consume_click()


def test_timer_that_expired_before_movement_wins_over_drag() -> None:
    gestures = _pressed()

    assert gestures.pointer_move(Point(x=150, y=100), 0.5) is None
    assert gestures.outcome == GestureOutcome.MENU
    assert gestures.pointer_up(0.6) == GestureOutcome.MENU


def test_release_after_deadline_without_poll_still_opens_menu() -> None:
    gestures = _pressed()

    assert gestures.pointer_up(0.3) == GestureOutcome.MENU


def test_football_never_long_presses() -> None:
    gestures = _pressed(TokenKind.FOOTBALL)

    assert gestures.poll(5.0) is None
    assert gestures.pointer_up(5.0) == GestureOutcome.CLICK


def test_football_drag_uses_offset() -> None:
    gestures = _pressed(TokenKind.FOOTBALL)

    assert gestures.pointer_move(Point(x=120, y=100), 2.0) == Point(x=118, y=98)
    assert gestures.active_drag is not None
    assert gestures.active_drag.kind == TokenKind.FOOTBALL


def test_each_gesture_has_exactly_one_outcome() -> None:
    scenarios = [
        ([], 0.1, GestureOutcome.CLICK),
        ([(Point(x=120, y=100), 0.1)], 0.2, GestureOutcome.DRAG),
        ([(Point(x=101, y=100), 0.3)], 0.4, GestureOutcome.MENU),
    ]
    for moves, release_at, expected in scenarios:
        gestures = _pressed()
        for pointer, now in moves:
            gestures.pointer_move(pointer, now)
        assert gestures.pointer_up(release_at) == expected


def test_cancel_discards_pending_intent() -> None:
    gestures = _pressed()
    gestures.cancel()

    assert gestures.poll(1.0) is None
    assert gestures.pointer_up(1.0) == GestureOutcome.NONE
