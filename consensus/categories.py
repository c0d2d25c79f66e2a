"""
Closed label set for FutureEmo annotation.

Four substantive emotion categories plus the ``Skip`` pseudo-label. Skip is
recorded like any other submission but never takes part in consensus or
statistics.
"""

from typing import Iterable

from .errors import ValidationError

HOPE = "Hope"
FEAR = "Fear"
DETERMINATION = "Determination"
NEUTRAL = "Neutral"
SKIP = "Skip"

# Enumeration order matters: it breaks majority-label ties in item agreement.
CATEGORIES = (HOPE, FEAR, DETERMINATION, NEUTRAL)
VALID_LABELS = CATEGORIES + (SKIP,)

STATUS_OPEN = "open"
STATUS_RESOLVED = "resolved"
STATUS_NEEDS_REVIEW = "needs_review"
STATUSES = (STATUS_OPEN, STATUS_RESOLVED, STATUS_NEEDS_REVIEW)

LABEL_SCHEMA = {
    HOPE: {
        "color": "#10b981",
        "description": "The commenter expects or wishes for a better future.",
        "example": "I believe AI will create new opportunities we haven't even imagined yet.",
    },
    FEAR: {
        "color": "#ef4444",
        "description": "The commenter is worried or anxious about what is coming.",
        "example": "I'm worried that AI will replace millions of jobs with no safety net.",
    },
    DETERMINATION: {
        "color": "#3b82f6",
        "description": "The commenter commits to act in response to the future.",
        "example": "I will learn these new skills no matter how long it takes.",
    },
    NEUTRAL: {
        "color": "#6b7280",
        "description": "The commenter describes what will or might happen without expressing hope, fear, or determination.",
        "example": "The CEO announced layoffs will begin next quarter.",
    },
}


def is_abstain(value: str) -> bool:
    return value == SKIP


def is_category(value: str) -> bool:
    """Check if a value is one of the substantive categories."""
    return value in CATEGORIES


def validate_label(value: str) -> str:
    """Return ``value`` if it is a valid submission label, else raise."""
    if value not in VALID_LABELS:
        raise ValidationError(f"Label must be one of: {', '.join(VALID_LABELS)}")
    return value


def validate_category(value: str) -> str:
    """Like :func:`validate_label` but rejects Skip as well."""
    if value not in CATEGORIES:
        raise ValidationError(f"Label must be one of: {', '.join(CATEGORIES)}")
    return value


def substantive(labels: Iterable[str]) -> list[str]:
    """Drop abstentions, keeping order."""
    return [label for label in labels if not is_abstain(label)]


def get_label_schema() -> dict:
    """Get the complete label schema with metadata."""
    return {
        "categories": [
            {"name": name, **LABEL_SCHEMA[name]} for name in CATEGORIES
        ],
        "abstain_label": SKIP,
        "valid_labels": list(VALID_LABELS),
        "statuses": list(STATUSES),
    }
