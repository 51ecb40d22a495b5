"""Toolkit-independent swipe recognition for the card stack.

The recognizer turns a positional drag on the topmost card into at most one
discrete ``(direction, listing)`` event.  Whatever renders the cards (the
terminal front end, a web view, a test) only has to report drag start,
displacement and release; it never decides directions itself.

Gesture state machine (one gesture per drag)::

    IDLE ──begin_drag──▶ DRAGGING ──release──▶ COMMITTED_LEFT / COMMITTED_RIGHT
                            │                  REJECTED   (up / down)
                            └──release under threshold──▶ IDLE (snap back)

Committed and rejected gestures are terminal; the next drag starts a new
gesture.  Only committed gestures reach the listener.

Feedback
~~~~~~~~
Each commit publishes a :class:`~depa_finder.core.models.SwipeFeedback`
that clears itself after ``feedback_delay`` seconds, or is replaced by the
next commit, whichever happens first.  The timer is an asyncio
``TimerHandle`` and is cancelled by :meth:`SwipeRecognizer.close`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import StrEnum

from depa_finder.core import events
from depa_finder.core.models import Listing, SwipeDirection, SwipeFeedback

__all__ = [
    "DEFAULT_SWIPE_THRESHOLD",
    "DEFAULT_FEEDBACK_DELAY",
    "SWIPE_MESSAGES",
    "GestureState",
    "CardGesture",
    "SwipeListener",
    "SwipeRecognizer",
    "classify_displacement",
]

logger = logging.getLogger(__name__)

DEFAULT_SWIPE_THRESHOLD: float = 140.0
DEFAULT_FEEDBACK_DELAY: float = 3.0

#: Banner text per committed direction.
SWIPE_MESSAGES: dict[SwipeDirection, str] = {
    SwipeDirection.LEFT: "No es para mí",
    SwipeDirection.RIGHT: "¡Me gusta!",
}

SwipeListener = Callable[[SwipeDirection, Listing], None]


class GestureState(StrEnum):
    IDLE = "idle"
    DRAGGING = "dragging"
    COMMITTED_LEFT = "committed_left"
    COMMITTED_RIGHT = "committed_right"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (
            GestureState.COMMITTED_LEFT,
            GestureState.COMMITTED_RIGHT,
            GestureState.REJECTED,
        )


_COMMITTED_STATES: dict[SwipeDirection, GestureState] = {
    SwipeDirection.LEFT: GestureState.COMMITTED_LEFT,
    SwipeDirection.RIGHT: GestureState.COMMITTED_RIGHT,
}


@dataclass
class CardGesture:
    """Mutable record of one drag on one card.

    Attributes:
        listing: The dragged card.
        dx: Horizontal displacement from the drag origin (right is positive).
        dy: Vertical displacement from the drag origin (down is positive).
        state: Where the gesture is in its state machine.
    """

    listing: Listing
    dx: float = 0.0
    dy: float = 0.0
    state: GestureState = GestureState.DRAGGING


def classify_displacement(dx: float, dy: float, threshold: float) -> SwipeDirection | None:
    """Classify a drag displacement.

    The dominant axis decides the direction; ties go to the horizontal axis.
    The displacement along that axis must exceed *threshold*.

    Args:
        dx: Horizontal displacement (right is positive).
        dy: Vertical displacement (down is positive, screen coordinates).
        threshold: Distance that must be crossed.

    Returns:
        The direction, or ``None`` when the threshold was not crossed.
    """
    if abs(dx) >= abs(dy):
        if abs(dx) <= threshold:
            return None
        return SwipeDirection.RIGHT if dx > 0 else SwipeDirection.LEFT
    if abs(dy) <= threshold:
        return None
    return SwipeDirection.DOWN if dy > 0 else SwipeDirection.UP


class SwipeRecognizer:
    """Recognises swipes on the topmost card of the deck.

    Args:
        cards: Callable returning the displayed window (oldest first).  The
            stack is its reverse, so the last displayed listing is on top.
        on_swipe: Listener receiving each committed ``(direction, listing)``.
        threshold: Drag distance that commits a swipe.
        feedback_delay: Seconds before the feedback banner clears itself.
    """

    def __init__(
        self,
        cards: Callable[[], Sequence[Listing]],
        on_swipe: SwipeListener | None = None,
        *,
        threshold: float = DEFAULT_SWIPE_THRESHOLD,
        feedback_delay: float = DEFAULT_FEEDBACK_DELAY,
    ) -> None:
        if threshold <= 0:
            raise ValueError(f"threshold must be > 0, got {threshold!r}.")
        self._cards = cards
        self._on_swipe = on_swipe
        self._threshold = threshold
        self._feedback_delay = feedback_delay
        self._gesture: CardGesture | None = None
        self._feedback: SwipeFeedback | None = None
        self._feedback_timer: asyncio.TimerHandle | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def stack(self) -> list[Listing]:
        """Cards in render order, topmost first."""
        return list(reversed(self._cards()))

    @property
    def top(self) -> Listing | None:
        cards = self._cards()
        return cards[-1] if cards else None

    @property
    def gesture(self) -> CardGesture | None:
        return self._gesture

    @property
    def feedback(self) -> SwipeFeedback | None:
        return self._feedback

    @property
    def threshold(self) -> float:
        return self._threshold

    # ------------------------------------------------------------------
    # Drag protocol
    # ------------------------------------------------------------------

    def begin_drag(self, listing: Listing) -> bool:
        """Start dragging *listing*.

        Returns:
            ``False`` (and starts nothing) when *listing* is not the top card.
        """
        top = self.top
        if top is None or top.id != listing.id:
            logger.debug("Ignoring drag on %s: not the top card", listing.id)
            return False
        self._gesture = CardGesture(listing=listing)
        return True

    def drag_to(self, dx: float, dy: float) -> None:
        """Report the current displacement from the drag origin."""
        gesture = self._gesture
        if gesture is None or gesture.state is not GestureState.DRAGGING:
            return
        gesture.dx = dx
        gesture.dy = dy

    def release(self) -> SwipeDirection | None:
        """End the drag and classify it.

        Returns:
            The committed ``left``/``right`` direction, or ``None`` for a
            rejected vertical swipe, a snap-back, or when no drag is active.
        """
        gesture = self._gesture
        if gesture is None or gesture.state is not GestureState.DRAGGING:
            return None

        direction = classify_displacement(gesture.dx, gesture.dy, self._threshold)

        if direction is None:
            gesture.state = GestureState.IDLE
            self._gesture = None
            return None

        if not direction.is_decision:
            gesture.state = GestureState.REJECTED
            logger.debug(
                "Swipe %s on %s rejected",
                direction,
                gesture.listing.id,
                extra={"event": events.SWIPE_REJECTED},
            )
            return None

        gesture.state = _COMMITTED_STATES[direction]
        self._commit(direction, gesture.listing)
        return direction

    def swipe(self, listing: Listing, direction: SwipeDirection) -> SwipeDirection | None:
        """Drive a full drag of *listing* just past the threshold.

        Used by keyboard front ends; goes through the same classification as
        a pointer drag, so ``up``/``down`` are rejected here too.
        """
        if not self.begin_drag(listing):
            return None
        distance = self._threshold + 1
        dx, dy = {
            SwipeDirection.LEFT: (-distance, 0.0),
            SwipeDirection.RIGHT: (distance, 0.0),
            SwipeDirection.UP: (0.0, -distance),
            SwipeDirection.DOWN: (0.0, distance),
        }[direction]
        self.drag_to(dx, dy)
        return self.release()

    def close(self) -> None:
        """Cancel the feedback timer and drop any pending state."""
        self._cancel_timer()
        self._feedback = None
        self._gesture = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _commit(self, direction: SwipeDirection, listing: Listing) -> None:
        feedback = SwipeFeedback(
            direction=direction,
            message=SWIPE_MESSAGES.get(direction, ""),
            listing=listing,
        )
        self._cancel_timer()
        self._feedback = feedback
        loop = asyncio.get_running_loop()
        self._feedback_timer = loop.call_later(
            self._feedback_delay, self._clear_feedback, feedback
        )

        logger.info(
            "Swipe %s on %s",
            direction,
            listing.id,
            extra={"event": events.SWIPE_COMMITTED},
        )
        if self._on_swipe is not None:
            self._on_swipe(direction, listing)

    def _clear_feedback(self, feedback: SwipeFeedback) -> None:
        if self._feedback is feedback:
            self._feedback = None
        self._feedback_timer = None

    def _cancel_timer(self) -> None:
        if self._feedback_timer is not None:
            self._feedback_timer.cancel()
            self._feedback_timer = None

