"""
OrderingReconciler: reordering state for ordering (sequence) questions.

The learner sees a fixed, shuffled display list of steps. What changes is
``order``, a permutation of display indices: ``order[k]`` is the display
index of the step shown at position k. Every update builds a new tuple and
replaces the old one, so ``order`` is always a full permutation of
``range(n)``.

Drag gestures use move()/drop(); keyboard arrows and up/down buttons use
swap() between neighbours.
"""

from __future__ import annotations

import random
from enum import Enum
from typing import Any, Sequence

from loguru import logger

from quiz_engine.answers.base import OrderingAnswer
from quiz_engine.answers.ordering import canonical_sequence
from quiz_engine.models import Question


class DropPosition(str, Enum):
    """Where a dragged step lands relative to the hovered one."""
    ABOVE = "above"
    ON = "on"
    BELOW = "below"


def drop_position(offset_ratio: float) -> DropPosition:
    """
    Classify a pointer offset within the hovered item.

    Args:
        offset_ratio: Pointer offset from the item's top edge divided by its height
    """
    if offset_ratio < 1 / 3:
        return DropPosition.ABOVE
    if offset_ratio > 2 / 3:
        return DropPosition.BELOW
    return DropPosition.ON


def seed_for(question_id: str) -> int:
    """Stable shuffle seed for a question (sum of character codes)."""
    return sum(ord(c) for c in str(question_id))


def seeded_shuffle(items: Sequence[Any], seed: int | None = None) -> list[Any]:
    """
    Fisher-Yates shuffle.

    With a seed the result is the same on every call, so a question keeps
    its display order across reloads.
    """
    result = list(items)
    rng = random.Random() if seed is None else None
    for i in range(len(result) - 1, 0, -1):
        if rng is None:
            j = ((seed + i) * 9301 + 49297) % 233280 % (i + 1)
        else:
            j = rng.randrange(i + 1)
        result[i], result[j] = result[j], result[i]
    return result


def _step_id(step: Any) -> str:
    if isinstance(step, dict):
        return str(step.get("id", ""))
    return str(getattr(step, "id", step))


class OrderingReconciler:
    """
    Permutation state over a fixed display list.

    Args:
        steps: Step ids, or objects/dicts with an ``id``, in authored order
        canonical_order: Correct sequence of step ids (defaults to authored order)
        seed: Shuffle seed; None shuffles randomly
        shuffle: Set False to display steps in authored order
    """

    def __init__(
        self,
        steps: Sequence[Any],
        canonical_order: Sequence[str] | None = None,
        seed: int | None = None,
        shuffle: bool = True,
    ):
        self.steps = list(steps)
        self.canonical: tuple[str, ...] = tuple(
            str(s) for s in (canonical_order if canonical_order else [_step_id(s) for s in self.steps])
        )
        self.display: tuple[Any, ...] = tuple(seeded_shuffle(self.steps, seed) if shuffle else self.steps)
        self.order: tuple[int, ...] = tuple(range(len(self.display)))

    @classmethod
    def from_question(cls, question: Question, seed: int | None = None, shuffle: bool = True) -> "OrderingReconciler":
        """Build from an ordering question, seeded by its id unless a seed is given."""
        canonical = canonical_sequence(question)
        return cls(
            canonical,
            canonical_order=canonical,
            seed=seed_for(question.id) if seed is None else seed,
            shuffle=shuffle,
        )

    def __len__(self) -> int:
        return len(self.order)

    # =========================================================================
    # Reordering
    # =========================================================================

    def move(self, from_: int, to: int) -> bool:
        """
        Remove the step at position ``from_`` and reinsert it at ``to``.

        Returns:
            False (and no change) when either index is out of range or equal
        """
        n = len(self.order)
        if not (0 <= from_ < n and 0 <= to < n) or from_ == to:
            return False
        new_order = list(self.order)
        item = new_order.pop(from_)
        new_order.insert(to, item)
        self.order = tuple(new_order)
        return True

    def drop_index(self, from_: int, over_index: int, offset_ratio: float) -> int:
        """
        Target position for dropping the step at ``from_`` over ``over_index``.

        ABOVE lands before the hovered step, BELOW after it, ON takes its place.
        """
        n = len(self.order)
        if from_ == over_index or n == 0:
            return from_
        position = drop_position(offset_ratio)
        if position == DropPosition.ON:
            target = over_index
        elif position == DropPosition.ABOVE:
            target = over_index if from_ > over_index else over_index - 1
        else:
            target = over_index + 1 if from_ > over_index else over_index
        return max(0, min(n - 1, target))

    def drop(self, from_: int, over_index: int, offset_ratio: float) -> bool:
        """Apply a drag-and-drop gesture."""
        return self.move(from_, self.drop_index(from_, over_index, offset_ratio))

    def swap(self, i: int, j: int) -> bool:
        """
        Exchange two adjacent positions.

        Boundary moves (first step up, last step down) and non-adjacent
        pairs are no-ops.
        """
        n = len(self.order)
        if not (0 <= i < n and 0 <= j < n) or abs(i - j) != 1:
            return False
        new_order = list(self.order)
        new_order[i], new_order[j] = new_order[j], new_order[i]
        self.order = tuple(new_order)
        return True

    def move_up(self, index: int) -> bool:
        return self.swap(index, index - 1)

    def move_down(self, index: int) -> bool:
        return self.swap(index, index + 1)

    def reset(self) -> None:
        self.order = tuple(range(len(self.display)))

    def restore(self, saved: Any) -> bool:
        """Adopt a persisted order if it is a permutation of the same length."""
        if not isinstance(saved, (list, tuple)) or len(saved) != len(self.display):
            return False
        if not all(isinstance(i, int) for i in saved) or sorted(saved) != list(range(len(self.display))):
            logger.debug(f"Ignoring saved ordering {saved!r}: not a permutation")
            return False
        self.order = tuple(saved)
        return True

    # =========================================================================
    # Results
    # =========================================================================

    def ordered_steps(self) -> list[Any]:
        return [self.display[i] for i in self.order]

    def ordered_ids(self) -> list[str]:
        return [_step_id(step) for step in self.ordered_steps()]

    def position_marks(self) -> list[bool]:
        """Per-position correctness for highlighting once results are shown."""
        ids = self.ordered_ids()
        return [k < len(self.canonical) and ids[k] == self.canonical[k] for k in range(len(ids))]

    def is_correct(self) -> bool:
        """Full match only; there is no partial credit."""
        return len(self.order) == len(self.canonical) and all(self.position_marks())

    def answer(self) -> OrderingAnswer:
        """Raw answer for the normalizer."""
        return OrderingAnswer(order=tuple(self.ordered_ids()))
