from __future__ import annotations

import logging
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from domain.models import Football, PlayData, PlayMetadata, PlayTab, Player, Route, Shape

LOGGER = logging.getLogger("canvas.tabs")

DEFAULT_HISTORY_LIMIT = 50


class CanvasSnapshot(BaseModel):
    """Entities of one tab at a point in time (an undo step)."""

    players: List[Player] = Field(default_factory=list)
    routes: List[Route] = Field(default_factory=list)
    shapes: List[Shape] = Field(default_factory=list)
    footballs: List[Football] = Field(default_factory=list)
    metadata: PlayMetadata = Field(default_factory=PlayMetadata)
    play_action_football_id: Optional[str] = None

    def to_play_data(self) -> PlayData:
        copy = self.model_copy(deep=True)
        return PlayData(**{name: getattr(copy, name) for name in CanvasSnapshot.model_fields})

    @classmethod
    def from_play_data(cls, data: PlayData) -> "CanvasSnapshot":
        copy = data.model_copy(deep=True)
        return cls(
            players=copy.players,
            routes=copy.routes,
            shapes=copy.shapes,
            footballs=copy.footballs,
            metadata=copy.metadata,
            play_action_football_id=copy.play_action_football_id,
        )


class PlayTypeState(CanvasSnapshot):
    """Everything a play-type tab owns, including its undo history."""

    history: List[CanvasSnapshot] = Field(default_factory=list)

    def snapshot(self) -> CanvasSnapshot:
        return CanvasSnapshot(
            **{name: getattr(self, name) for name in CanvasSnapshot.model_fields}
        ).model_copy(deep=True)

    def restore(self, snapshot: CanvasSnapshot) -> None:
        restored = snapshot.model_copy(deep=True)
        for name in CanvasSnapshot.model_fields:
            setattr(self, name, getattr(restored, name))

    def push_history(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self.history.append(self.snapshot())
        if len(self.history) > limit:
            del self.history[: len(self.history) - limit]

    def undo(self) -> bool:
        if not self.history:
            return False
        self.restore(self.history.pop())
        return True


class TabStore:
    """Isolated state bundles keyed by play-type tab.

    Bundles are deep-copied on the way in and out so no two tabs (or a tab and
    the live canvas) ever share mutable entities.
    """

    def __init__(self) -> None:
        self._bundles: Dict[PlayTab, PlayTypeState] = {tab: PlayTypeState() for tab in PlayTab}

    def load(self, tab: PlayTab) -> PlayTypeState:
        return self._bundles[tab].model_copy(deep=True)

    def store(self, tab: PlayTab, state: PlayTypeState) -> None:
        self._bundles[tab] = state.model_copy(deep=True)

    def switch(self, current_tab: PlayTab, current: PlayTypeState, target: PlayTab) -> PlayTypeState:
        self.store(current_tab, current)
        LOGGER.debug("Switching tab %s -> %s", current_tab.value, target.value)
        return self.load(target)
