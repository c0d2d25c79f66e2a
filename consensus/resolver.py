"""
Consensus resolution for a single comment.

The resolver turns the ordered list of substantive labels an item has
received into one of three outcomes:

- ``Resolved(label)``: two matching labels, or a unique plurality once three
  or more labels are in
- ``Open``: fewer than two labels, or two that disagree (waiting for a third
  opinion)
- ``NeedsReview``: three or more labels with a tie for the top vote, which is
  handed to a human adjudicator instead of being broken automatically

Only ``Resolved`` carries a label, so "resolved label is set iff status is
resolved" holds by construction.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from .categories import (
    STATUS_NEEDS_REVIEW,
    STATUS_OPEN,
    STATUS_RESOLVED,
    STATUSES,
    validate_category,
)
from .errors import ValidationError

# Labels needed before a unanimous pair resolves an item.
RESOLVE_THRESHOLD = 2


@dataclass(frozen=True)
class Resolved:
    label: str
    status = STATUS_RESOLVED

    @property
    def resolved_label(self) -> Optional[str]:
        return self.label


@dataclass(frozen=True)
class Open:
    status = STATUS_OPEN
    resolved_label = None


@dataclass(frozen=True)
class NeedsReview:
    status = STATUS_NEEDS_REVIEW
    resolved_label = None


Outcome = Union[Resolved, Open, NeedsReview]


def resolve(labels: Sequence[str]) -> Outcome:
    """
    Compute the outcome for an item from its substantive labels.

    Args:
        labels: Non-abstain labels in submission order.

    Raises:
        ValidationError: if a label is Skip or not a known category.
    """
    for label in labels:
        validate_category(label)

    n = len(labels)
    if n < RESOLVE_THRESHOLD:
        return Open()

    if n == RESOLVE_THRESHOLD:
        first, second = labels
        return Resolved(first) if first == second else Open()

    votes = Counter(labels)
    max_votes = max(votes.values())
    leaders = [label for label, count in votes.items() if count == max_votes]

    if len(leaders) == 1:
        return Resolved(leaders[0])
    return NeedsReview()


def outcome_from_row(final_label: Optional[str], status: str) -> Outcome:
    """Rebuild an outcome from stored ``final_label``/``status`` columns."""
    if status == STATUS_RESOLVED and final_label is not None:
        return Resolved(final_label)
    if status == STATUS_NEEDS_REVIEW:
        return NeedsReview()
    return Open()


class _Unset:
    def __repr__(self):
        return "UNSET"


UNSET = _Unset()


def apply_override(current: Outcome, final_label=UNSET, status=UNSET) -> Outcome:
    """
    Apply an admin override to an item's outcome.

    ``final_label`` may be a category, ``None`` (clear it) or ``UNSET``;
    ``status`` may be a status string or ``UNSET``. The result always
    satisfies the resolved-label/status invariant; combinations that cannot
    (a label with a non-resolved status, ``resolved`` with no label) are
    rejected.
    """
    if final_label is not UNSET and final_label is not None:
        validate_category(final_label)
    if status is not UNSET and status not in STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(STATUSES)}")

    if status is UNSET:
        if final_label is UNSET:
            return current
        return Open() if final_label is None else Resolved(final_label)

    if status == STATUS_RESOLVED:
        label = current.resolved_label if final_label is UNSET else final_label
        if label is None:
            raise ValidationError("A resolved comment needs a final label")
        return Resolved(label)

    if final_label is not UNSET and final_label is not None:
        raise ValidationError(f"final_label can only be set when status is '{STATUS_RESOLVED}'")

    return Open() if status == STATUS_OPEN else NeedsReview()
