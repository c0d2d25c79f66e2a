"""
Annotation consensus and inter-rater reliability engine.

Pure functions over label values; the SQLite service in ``app.py`` feeds them
and persists their results.
"""

from .agreement import corpus_reliability, fleiss_terms, item_agreement
from .annotators import AnnotatorLabel, annotator_stats
from .errors import (
    ConsensusError,
    DuplicateSubmissionError,
    NotFoundError,
    ValidationError,
)
from .resolver import NeedsReview, Open, Outcome, Resolved, apply_override, resolve

__all__ = [
    "AnnotatorLabel",
    "ConsensusError",
    "DuplicateSubmissionError",
    "NeedsReview",
    "NotFoundError",
    "Open",
    "Outcome",
    "Resolved",
    "ValidationError",
    "annotator_stats",
    "apply_override",
    "corpus_reliability",
    "fleiss_terms",
    "item_agreement",
    "resolve",
]
