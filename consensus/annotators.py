"""
Per-annotator quality figures.

For each annotator: how often their labels disagree with the resolved label
of the comments they labeled, and how quickly they label (mean gap between
consecutive submissions, ignoring session breaks).
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Mapping, Optional, Sequence

from .categories import STATUS_RESOLVED, is_abstain

# Gaps longer than this are work-session breaks, not labeling speed.
GAP_CUTOFF_SECONDS = 3600
MIN_GAPS_FOR_AVERAGE = 2


@dataclass
class AnnotatorLabel:
    """One label an annotator submitted, joined with its comment's current state."""
    value: str
    submitted_at: datetime
    item_status: str
    item_resolved_label: Optional[str] = None


@dataclass
class AnnotatorStats:
    annotator_name: str
    total_labels: int
    agreement_count: int
    disagreement_count: int
    disagreement_rate: Optional[float]
    avg_gap_seconds: Optional[float]

    def to_dict(self) -> dict:
        return asdict(self)


def average_gap_seconds(timestamps: Sequence[datetime]) -> Optional[float]:
    """
    Mean gap between consecutive timestamps, in seconds.

    Gaps over GAP_CUTOFF_SECONDS are discarded; returns None when fewer than
    MIN_GAPS_FOR_AVERAGE gaps remain.
    """
    ordered = sorted(timestamps)
    gaps = [
        (later - earlier).total_seconds()
        for earlier, later in zip(ordered, ordered[1:])
    ]
    kept = [gap for gap in gaps if gap <= GAP_CUTOFF_SECONDS]
    if len(kept) < MIN_GAPS_FOR_AVERAGE:
        return None
    return sum(kept) / len(kept)


def summarize_annotator(name: str, labels: Sequence[AnnotatorLabel]) -> AnnotatorStats:
    counted = [label for label in labels if not is_abstain(label.value)]

    agreement_count = 0
    disagreement_count = 0
    for label in counted:
        if label.item_status != STATUS_RESOLVED or label.item_resolved_label is None:
            continue
        if label.value == label.item_resolved_label:
            agreement_count += 1
        else:
            disagreement_count += 1

    scored = agreement_count + disagreement_count
    return AnnotatorStats(
        annotator_name=name,
        total_labels=len(counted),
        agreement_count=agreement_count,
        disagreement_count=disagreement_count,
        disagreement_rate=disagreement_count / scored if scored else None,
        avg_gap_seconds=average_gap_seconds([label.submitted_at for label in counted]),
    )


def annotator_stats(labels_by_annotator: Mapping[str, Sequence[AnnotatorLabel]]) -> list[AnnotatorStats]:
    """
    Compute quality figures for every annotator.

    Only labels on resolved comments count towards agreement. Skip labels are
    ignored. Results are ordered by total labels, busiest annotator first.
    """
    stats = [
        summarize_annotator(name, labels)
        for name, labels in labels_by_annotator.items()
    ]
    stats = [s for s in stats if s.total_labels > 0]
    stats.sort(key=lambda s: (-s.total_labels, s.annotator_name))
    return stats
