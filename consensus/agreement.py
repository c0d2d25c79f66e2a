"""
Agreement statistics over categorical labels.

Two flavours of Fleiss' Kappa are exposed and must not be confused:

- ``item_agreement``: a local, single-subject kappa used as a per-comment
  diagnostic next to raw percentage agreement and the majority label.
- ``corpus_reliability``: the standard Fleiss' Kappa over every comment with
  at least two substantive labels, with a variable number of raters per
  comment.

Both are built on ``fleiss_terms``, which computes the observed (P-bar) and
chance (P-bar-e) agreement from per-subject category count vectors.

Reference: Fleiss, J. L. (1971). Measuring nominal scale agreement among many
raters. Psychological Bulletin, 76(5), 378-382.
"""

import math
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Iterable, Optional, Sequence

from .categories import CATEGORIES, substantive

KAPPA_FORMULA = "κ = (P̄ - P̄e) / (1 - P̄e)"
KAPPA_DESCRIPTION = "Fleiss Kappa measures inter-rater reliability for multiple raters"
KAPPA_REFERENCE = (
    "Fleiss, J. L. (1971). Measuring nominal scale agreement among many raters. "
    "Psychological Bulletin, 76(5), 378-382."
)

# (lower bound, label); bands are inclusive below, exclusive above.
INTERPRETATION_BANDS = [
    (0.80, "Almost Perfect"),
    (0.60, "Substantial"),
    (0.40, "Moderate"),
    (0.20, "Fair"),
    (0.0, "Slight"),
]
POOR = "Poor"


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves towards +infinity (``round`` would round half to even)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def percent(numerator: float, denominator: float) -> int:
    return int(round_half_up(100 * numerator / denominator))


@dataclass
class FleissTerms:
    """Observed and chance agreement for a set of subjects."""
    p_bar: float
    p_bar_e: float
    proportions: list[float]  # p_j, aligned with the count vectors
    subject_count: int
    rating_count: int


def fleiss_terms(count_vectors: Sequence[Sequence[int]]) -> FleissTerms:
    """
    Compute the Fleiss agreement terms for per-subject count vectors.

    Each vector holds, for one subject, how many raters chose each category;
    all vectors must be aligned to the same category order. Raters per
    subject may vary but every subject needs at least two.

    P_i = (sum_j c_ij^2 - n_i) / (n_i (n_i - 1)), P-bar is the unweighted
    mean of P_i, p_j is category j's share of all assignments and
    P-bar-e = sum_j p_j^2.
    """
    if not count_vectors:
        raise ValueError("At least one subject is required")

    width = len(count_vectors[0])
    category_totals = [0] * width
    p_i_sum = 0.0
    rating_count = 0

    for counts in count_vectors:
        if len(counts) != width:
            raise ValueError("Count vectors must share one category order")
        n = sum(counts)
        if n < 2:
            raise ValueError(f"Each subject needs at least 2 ratings, got {n}")
        p_i_sum += (sum(c * c for c in counts) - n) / (n * (n - 1))
        for j, c in enumerate(counts):
            category_totals[j] += c
        rating_count += n

    proportions = [total / rating_count for total in category_totals]
    return FleissTerms(
        p_bar=p_i_sum / len(count_vectors),
        p_bar_e=sum(p * p for p in proportions),
        proportions=proportions,
        subject_count=len(count_vectors),
        rating_count=rating_count,
    )


# ============================================================================
# Item agreement
# ============================================================================

@dataclass
class ItemAgreement:
    """Agreement diagnostics for one comment."""
    label_count: int
    agreement_pct: Optional[int] = None
    majority_label: Optional[str] = None
    kappa: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)


def single_item_kappa(counts: Sequence[int]) -> Optional[float]:
    """
    Fleiss' Kappa for a single subject, clamped to [-1, 1] and rounded to
    3 decimals. None when fewer than two raters.
    """
    if sum(counts) < 2:
        return None

    terms = fleiss_terms([counts])
    if terms.p_bar_e >= 1:
        return 1.0
    if terms.p_bar_e <= 0:
        return 0.0

    kappa = (terms.p_bar - terms.p_bar_e) / (1 - terms.p_bar_e)
    return round_half_up(max(-1.0, min(1.0, kappa)), 3)


def item_agreement(labels: Iterable[str]) -> ItemAgreement:
    """
    Compute agreement percentage, majority label and single-item kappa.

    Skip labels are ignored. The majority label is the first category, in
    enumeration order, that reaches the top count.
    """
    values = substantive(labels)
    n = len(values)

    if n == 0:
        return ItemAgreement(label_count=0)

    if n == 1:
        return ItemAgreement(label_count=1, agreement_pct=100, majority_label=values[0])

    tally = Counter(values)
    counts = [tally.get(category, 0) for category in CATEGORIES]
    max_count = max(counts)
    majority_label = CATEGORIES[counts.index(max_count)]

    return ItemAgreement(
        label_count=n,
        agreement_pct=percent(max_count, n),
        majority_label=majority_label,
        kappa=single_item_kappa(counts),
    )


# ============================================================================
# Corpus reliability
# ============================================================================

@dataclass
class CorpusReliability:
    """Corpus-wide Fleiss' Kappa and its supporting figures."""
    kappa: Optional[float] = None
    interpretation: Optional[str] = None
    p_bar: Optional[float] = None
    p_bar_e: Optional[float] = None
    total_items: int = 0
    mean_raters: float = 0.0
    categories: list[str] = field(default_factory=list)
    category_distribution: dict[str, int] = field(default_factory=dict)

    @property
    def has_data(self) -> bool:
        return self.total_items > 0

    def to_dict(self) -> dict:
        return asdict(self)


def interpret_kappa(kappa: Optional[float]) -> Optional[str]:
    """Landis & Koch style band for a kappa value."""
    if kappa is None:
        return None
    if kappa < 0:
        return POOR
    for lower, label in INTERPRETATION_BANDS:
        if kappa >= lower:
            return label
    return POOR


def corpus_reliability(items: Iterable[Sequence[str]]) -> CorpusReliability:
    """
    Compute Fleiss' Kappa across comments.

    Args:
        items: One label sequence per comment. Skip labels are dropped and
            comments left with fewer than two labels do not take part.

    Returns:
        A ``CorpusReliability``; when no comment qualifies this is the empty
        "no data" result rather than an error.
    """
    qualifying = [values for values in (substantive(labels) for labels in items) if len(values) >= 2]
    if not qualifying:
        return CorpusReliability()

    categories = sorted({value for values in qualifying for value in values})
    tallies = [Counter(values) for values in qualifying]
    vectors = [[tally.get(category, 0) for category in categories] for tally in tallies]

    terms = fleiss_terms(vectors)

    if terms.p_bar_e < 1:
        kappa = round_half_up((terms.p_bar - terms.p_bar_e) / (1 - terms.p_bar_e), 3)
    elif terms.p_bar == 1:
        kappa = 1.0
    else:
        kappa = None

    return CorpusReliability(
        kappa=kappa,
        interpretation=interpret_kappa(kappa),
        p_bar=round_half_up(terms.p_bar, 3),
        p_bar_e=round_half_up(terms.p_bar_e, 3),
        total_items=terms.subject_count,
        mean_raters=round_half_up(terms.rating_count / terms.subject_count, 1),
        categories=categories,
        category_distribution={
            category: int(round_half_up(100 * p)) for category, p in zip(categories, terms.proportions)
        },
    )
