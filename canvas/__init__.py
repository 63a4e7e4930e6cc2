"""Interaction engine behind the play designer canvas."""

from .engine import ContextMenu, MenuStep, PlayDesigner
from .events import EventBus, Notification
from .render import RenderModel, to_svg

__all__ = [
    "ContextMenu",
    "MenuStep",
    "PlayDesigner",
    "EventBus",
    "Notification",
    "RenderModel",
    "to_svg",
]
