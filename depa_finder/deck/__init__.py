"""Swipe deck: buffer, gesture recognition and consumption."""

from depa_finder.deck.buffer import (
    BufferEffect,
    BufferEvent,
    BufferEventKind,
    BufferManager,
    BufferState,
    transition,
)
from depa_finder.deck.coordinator import ConsumptionCoordinator, LikesCollection
from depa_finder.deck.swipe import (
    CardGesture,
    GestureState,
    SwipeRecognizer,
    classify_displacement,
)

__all__ = [
    # Buffer
    "BufferManager",
    "BufferState",
    "BufferEvent",
    "BufferEventKind",
    "BufferEffect",
    "transition",
    # Swipe recognition
    "SwipeRecognizer",
    "CardGesture",
    "GestureState",
    "classify_displacement",
    # Consumption
    "ConsumptionCoordinator",
    "LikesCollection",
]
