#!/usr/bin/env python3
"""
FutureEmo Labeler - crowdsourced emotion labeling of social-media comments.

Features:
- Fixed label set: Hope, Fear, Determination, Neutral (plus Skip to abstain)
- Consensus resolution after every label (resolved / open / needs_review)
- One label per annotator per comment, enforced atomically
- Per-comment agreement: percentage, majority label, single-item Fleiss' Kappa
- Corpus-wide Fleiss' Kappa with Landis & Koch interpretation
- Annotator quality: disagreement with resolved labels, labeling pace
- Admin override of final labels, CSV export
- SQLite persistence

Usage:
    cd futureemo-labeler
    uvicorn app:app --reload --port 8000
    python scripts/seed_comments.py comments.csv

Environment Variables:
    LABELS_DB_PATH=/path/labels.db  - SQLite database file (default: labels.db next to app.py)
    ADMIN_KEY=secret  - Require ?key=secret on admin endpoints (default: unset, admin endpoints open)
    BATCH_SIZE=50  - Comments returned by /api/next-batch (default: 50)
    BATCH_MAX_LABELS=3  - Comments with this many labels leave the batch pool (default: 3)
    LOG_LEVEL=INFO  - Logging level
"""

import csv
import io
import os
import re
import secrets
import sqlite3
from collections import defaultdict
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Response
from pydantic import BaseModel, Field

from consensus.agreement import (
    KAPPA_DESCRIPTION,
    KAPPA_FORMULA,
    KAPPA_REFERENCE,
    CorpusReliability,
    corpus_reliability,
    item_agreement,
)
from consensus.annotators import AnnotatorLabel, AnnotatorStats, annotator_stats
from consensus.categories import (
    SKIP,
    STATUS_NEEDS_REVIEW,
    STATUS_OPEN,
    STATUS_RESOLVED,
    get_label_schema,
    is_abstain,
    validate_label,
)
from consensus.errors import (
    ConsensusError,
    DuplicateSubmissionError,
    NotFoundError,
    ValidationError,
)
from consensus.locks import ItemLockRegistry
from consensus.logging_utils import get_logger
from consensus.resolver import UNSET, apply_override, outcome_from_row, resolve

# Paths - relative to this file's directory
APP_DIR = Path(__file__).parent.resolve()
DB_PATH = Path(os.environ.get("LABELS_DB_PATH", APP_DIR / "labels.db"))

# Configuration
ADMIN_KEY = os.environ.get("ADMIN_KEY", "")
BATCH_SIZE = int(os.environ.get("BATCH_SIZE", "50"))
BATCH_MAX_LABELS = int(os.environ.get("BATCH_MAX_LABELS", "3"))

ITEM_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
MAX_ANNOTATOR_NAME_LENGTH = 100
EXPORT_FILENAME = "futureemo_labels.csv"

logger = get_logger("futureemo.app")

# Serializes writes per comment; different comments proceed in parallel.
item_locks = ItemLockRegistry()


API_DESCRIPTION = """
Crowdsourced emotion labeling for short comments.

## Workflow

1. An annotator fetches a batch of open comments (`/api/next-batch`)
2. Each label is submitted individually (`/api/submit-label`)
3. After every substantive label the comment's consensus is recomputed:
   - two matching labels resolve the comment
   - two differing labels keep it open for a third opinion
   - from three labels on, a unique plurality resolves it and a tie sends it
     to admin review
4. Admins inspect agreement and reliability, override final labels and
   export the data set

`Skip` is recorded but never counts towards consensus or statistics.

## Admin access

When `ADMIN_KEY` is configured, admin endpoints require `?key=<ADMIN_KEY>`.
"""

TAGS_METADATA = [
    {"name": "Annotation", "description": "Fetching comments and submitting labels."},
    {"name": "Comments", "description": "Comment details and per-comment agreement."},
    {"name": "Admin", "description": "Statistics, reliability and overrides. Requires the admin key."},
    {"name": "Export", "description": "CSV export of labels. Requires the admin key."},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the database on startup."""
    init_db()
    logger.info("Label store ready at %s", DB_PATH)
    yield


app = FastAPI(
    title="FutureEmo Labeler",
    description=API_DESCRIPTION,
    version="1.0.0",
    openapi_tags=TAGS_METADATA,
    lifespan=lifespan,
)


# ============================================================================
# Database Setup
# ============================================================================

def init_db():
    """Initialize SQLite database."""
    with get_db() as conn:
        conn.execute("PRAGMA journal_mode = WAL")
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS comments (
                id TEXT PRIMARY KEY,
                text TEXT NOT NULL,
                label_count INTEGER NOT NULL DEFAULT 0 CHECK (label_count >= 0),
                final_label TEXT,
                status TEXT NOT NULL DEFAULT 'open'
                    CHECK (status IN ('open', 'resolved', 'needs_review')),
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS labels (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                comment_id TEXT NOT NULL REFERENCES comments(id),
                annotator_name TEXT NOT NULL,
                label TEXT NOT NULL,
                created_at TEXT NOT NULL,
                UNIQUE (comment_id, annotator_name)
            );

            CREATE INDEX IF NOT EXISTS idx_comments_status ON comments(status);
            CREATE INDEX IF NOT EXISTS idx_comments_final_label ON comments(final_label);
            CREATE INDEX IF NOT EXISTS idx_labels_comment ON labels(comment_id);
            CREATE INDEX IF NOT EXISTS idx_labels_annotator ON labels(annotator_name);
        """)


@contextmanager
def get_db():
    """Database connection context manager."""
    conn = sqlite3.connect(DB_PATH, timeout=30)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def new_comment_id() -> str:
    return secrets.token_hex(12)


def add_comments(texts: Iterable[str]) -> tuple[int, int]:
    """
    Insert comments that are not already stored (matched on text).

    Returns:
        (inserted, skipped)
    """
    inserted = 0
    skipped = 0
    with get_db() as conn:
        for text in texts:
            text = text.strip()
            if not text:
                continue
            existing = conn.execute("SELECT id FROM comments WHERE text = ?", (text,)).fetchone()
            if existing:
                skipped += 1
                continue
            conn.execute("""
                INSERT INTO comments (id, text, label_count, final_label, status, created_at)
                VALUES (?, ?, 0, NULL, ?, ?)
            """, (new_comment_id(), text, STATUS_OPEN, utc_now()))
            inserted += 1
    return inserted, skipped


# ============================================================================
# Validation Helpers
# ============================================================================

def validate_item_id(item_id: str) -> str:
    if not item_id or not ITEM_ID_PATTERN.match(item_id):
        raise ValidationError("Valid comment ID is required")
    return item_id


def normalize_annotator_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Valid annotator name is required")
    if len(name) > MAX_ANNOTATOR_NAME_LENGTH:
        raise ValidationError(f"Annotator name must be at most {MAX_ANNOTATOR_NAME_LENGTH} characters")
    return name


def http_error(exc: ConsensusError) -> HTTPException:
    """Map a core error to the HTTP error the API returns for it."""
    if isinstance(exc, NotFoundError):
        return HTTPException(404, str(exc))
    return HTTPException(400, str(exc))


# ============================================================================
# Pydantic Models
# ============================================================================

class LabelSubmission(BaseModel):
    """A single label for a single comment."""
    name: str = Field(..., description="Annotator name", examples=["alice"])
    item_id: str = Field(..., description="ID of the comment being labeled", examples=["65f1c2a9e4b0a1b2c3d4e5f6"])
    label: str = Field(..., description="Hope, Fear, Determination, Neutral or Skip", examples=["Hope"])


class SubmissionResponse(BaseModel):
    """Comment state after a submission."""
    id: str = Field(..., description="Comment ID")
    final_label: Optional[str] = Field(None, description="Resolved label, set only when status is 'resolved'")
    status: str = Field(..., description="open, resolved or needs_review")
    label_count: int = Field(..., description="Number of non-Skip labels")


class BatchItem(BaseModel):
    """A comment served for labeling."""
    id: str = Field(..., description="Comment ID")
    text: str = Field(..., description="Comment text")


class ItemLabel(BaseModel):
    """One annotator's label on a comment."""
    annotator_name: str
    label: str
    created_at: str


class ItemDetailResponse(BaseModel):
    """Comment with its labels and agreement diagnostics."""
    id: str
    text: str
    final_label: Optional[str] = None
    status: str
    label_count: int
    created_at: str
    labels: list[ItemLabel] = Field(default_factory=list, description="All labels, including Skip, oldest first")
    annotators: list[str] = Field(default_factory=list, description="Annotators who labeled this comment")
    agreement_pct: Optional[int] = Field(None, description="Share of non-Skip labels matching the majority (0-100)")
    majority_label: Optional[str] = Field(None, description="Most frequent non-Skip label")
    kappa: Optional[float] = Field(None, description="Single-item Fleiss' Kappa; null with fewer than 2 raters")


class ItemOverride(BaseModel):
    """Admin override of a comment's final label and/or status."""
    final_label: Optional[str] = Field(None, description="Hope, Fear, Determination, Neutral or null to clear")
    status: Optional[str] = Field(None, description="open, resolved or needs_review")


class AgreementSummary(BaseModel):
    agreement_count: int = Field(..., description="Comments whose non-Skip labels are all identical")
    disagreement_count: int = Field(..., description="Comments with at least two distinct labels")
    agreement_rate: Optional[float] = Field(None, description="agreement / (agreement + disagreement)")


class AdminStatsResponse(BaseModel):
    total_comments: int
    total_labels: int
    comments_with_at_least_one_label: int
    comments_with_at_least_two_labels: int
    resolved_comments: int
    needs_review_comments: int
    open_comments: int
    agreement: AgreementSummary


class AnnotatorStatsEntry(BaseModel):
    annotator_name: str
    total_labels: int
    agreement_count: int
    disagreement_count: int
    disagreement_rate: Optional[float] = None
    avg_gap_seconds: Optional[float] = Field(None, description="Mean seconds between labels, ignoring breaks over an hour")


class KappaDetails(BaseModel):
    formula: str = KAPPA_FORMULA
    description: str = KAPPA_DESCRIPTION
    reference: str = KAPPA_REFERENCE


class KappaResponse(BaseModel):
    """Corpus-wide Fleiss' Kappa."""
    overall_kappa: Optional[float] = Field(None, description="Fleiss' Kappa across comments with 2+ labels")
    interpretation: Optional[str] = Field(None, description="Poor, Slight, Fair, Moderate, Substantial or Almost Perfect")
    p_bar: Optional[float] = Field(None, description="Mean observed agreement")
    p_bar_e: Optional[float] = Field(None, description="Agreement expected by chance")
    total_comments: int = Field(0, description="Comments included in the calculation")
    mean_raters: float = Field(0.0, description="Mean non-Skip labels per included comment")
    categories: list[str] = Field(default_factory=list)
    category_distribution: dict[str, int] = Field(default_factory=dict, description="Percentage of assignments per category")
    message: Optional[str] = None
    details: KappaDetails = Field(default_factory=KappaDetails)


# ============================================================================
# Label Store Operations
# ============================================================================

def submission_response(row) -> SubmissionResponse:
    return SubmissionResponse(
        id=row["id"],
        final_label=row["final_label"],
        status=row["status"],
        label_count=row["label_count"],
    )


def submit_label(item_id: str, annotator_name: str, value: str) -> SubmissionResponse:
    """
    Record a label and recompute the comment's consensus.

    Skip labels are recorded but leave the comment untouched. Everything
    else reruns the resolver over the full non-Skip history and stores the
    outcome in the same transaction as the insert.

    Raises:
        ValidationError: bad comment id, annotator name or label.
        NotFoundError: the comment does not exist.
        DuplicateSubmissionError: the annotator already labeled this comment.
    """
    item_id = validate_item_id(item_id)
    annotator_name = normalize_annotator_name(annotator_name)
    validate_label(value)

    with item_locks.hold(item_id):
        with get_db() as conn:
            conn.execute("BEGIN IMMEDIATE")

            comment = conn.execute("""
                SELECT id, final_label, status, label_count FROM comments WHERE id = ?
            """, (item_id,)).fetchone()
            if not comment:
                raise NotFoundError(item_id)

            try:
                conn.execute("""
                    INSERT INTO labels (comment_id, annotator_name, label, created_at)
                    VALUES (?, ?, ?, ?)
                """, (item_id, annotator_name, value, utc_now()))
            except sqlite3.IntegrityError as e:
                raise DuplicateSubmissionError(item_id, annotator_name) from e

            if is_abstain(value):
                return submission_response(comment)

            labels = [row["label"] for row in conn.execute("""
                SELECT label FROM labels
                WHERE comment_id = ? AND label != ?
                ORDER BY created_at, id
            """, (item_id, SKIP)).fetchall()]

            outcome = resolve(labels)
            conn.execute("""
                UPDATE comments SET label_count = ?, final_label = ?, status = ?
                WHERE id = ?
            """, (len(labels), outcome.resolved_label, outcome.status, item_id))

    if outcome.status != STATUS_OPEN:
        logger.info("Comment %s is %s (%s) after %d labels",
                    item_id, outcome.status, outcome.resolved_label or "-", len(labels))

    return SubmissionResponse(
        id=item_id,
        final_label=outcome.resolved_label,
        status=outcome.status,
        label_count=len(labels),
    )


def get_next_batch(annotator_name: str, limit: Optional[int] = None) -> list[BatchItem]:
    """Open comments with few labels that this annotator has not labeled yet."""
    annotator_name = normalize_annotator_name(annotator_name)
    with get_db() as conn:
        rows = conn.execute("""
            SELECT c.id, c.text FROM comments c
            WHERE c.status = ?
              AND c.label_count < ?
              AND NOT EXISTS (
                  SELECT 1 FROM labels l
                  WHERE l.comment_id = c.id AND l.annotator_name = ?
              )
            ORDER BY c.label_count, c.created_at, c.id
            LIMIT ?
        """, (STATUS_OPEN, BATCH_MAX_LABELS, annotator_name, limit or BATCH_SIZE)).fetchall()
    return [BatchItem(id=row["id"], text=row["text"]) for row in rows]


def build_item_detail(comment, labels: list) -> ItemDetailResponse:
    agreement = item_agreement(label["label"] for label in labels)
    annotators = list(dict.fromkeys(label["annotator_name"] for label in labels))
    return ItemDetailResponse(
        id=comment["id"],
        text=comment["text"],
        final_label=comment["final_label"],
        status=comment["status"],
        label_count=comment["label_count"],
        created_at=comment["created_at"],
        labels=[
            ItemLabel(
                annotator_name=label["annotator_name"],
                label=label["label"],
                created_at=label["created_at"],
            )
            for label in labels
        ],
        annotators=annotators,
        agreement_pct=agreement.agreement_pct,
        majority_label=agreement.majority_label,
        kappa=agreement.kappa,
    )


def get_item_detail(item_id: str) -> ItemDetailResponse:
    """Comment fields plus agreement computed from its current labels."""
    item_id = validate_item_id(item_id)
    with get_db() as conn:
        # One read transaction so the comment row and its labels share a snapshot.
        conn.execute("BEGIN")
        comment = conn.execute("SELECT * FROM comments WHERE id = ?", (item_id,)).fetchone()
        if not comment:
            raise NotFoundError(item_id)
        labels = conn.execute("""
            SELECT annotator_name, label, created_at FROM labels
            WHERE comment_id = ?
            ORDER BY created_at, id
        """, (item_id,)).fetchall()
    return build_item_detail(comment, labels)


def list_item_details(min_labels: int = 0) -> list[ItemDetailResponse]:
    """Every comment with its labels and agreement, newest first."""
    with get_db() as conn:
        conn.execute("BEGIN")
        comments = conn.execute("""
            SELECT * FROM comments
            WHERE label_count >= ?
            ORDER BY created_at DESC, id
        """, (min_labels,)).fetchall()
        rows = conn.execute("""
            SELECT comment_id, annotator_name, label, created_at FROM labels
            ORDER BY created_at, id
        """).fetchall()

    labels_by_comment = defaultdict(list)
    for row in rows:
        labels_by_comment[row["comment_id"]].append(row)

    return [build_item_detail(comment, labels_by_comment[comment["id"]]) for comment in comments]


def get_corpus_reliability() -> CorpusReliability:
    """Fleiss' Kappa over every comment with at least two non-Skip labels."""
    with get_db() as conn:
        rows = conn.execute("""
            SELECT comment_id, label FROM labels
            WHERE label != ?
            ORDER BY comment_id, created_at, id
        """, (SKIP,)).fetchall()

    labels_by_comment = defaultdict(list)
    for row in rows:
        labels_by_comment[row["comment_id"]].append(row["label"])

    return corpus_reliability(labels_by_comment.values())


def get_annotator_stats() -> list[AnnotatorStats]:
    """Disagreement and pace for every annotator with non-Skip labels."""
    with get_db() as conn:
        rows = conn.execute("""
            SELECT l.annotator_name, l.label, l.created_at, c.status, c.final_label
            FROM labels l
            JOIN comments c ON c.id = l.comment_id
            WHERE l.label != ?
            ORDER BY l.created_at, l.id
        """, (SKIP,)).fetchall()

    labels_by_annotator = defaultdict(list)
    for row in rows:
        labels_by_annotator[row["annotator_name"]].append(AnnotatorLabel(
            value=row["label"],
            submitted_at=datetime.fromisoformat(row["created_at"]),
            item_status=row["status"],
            item_resolved_label=row["final_label"],
        ))

    return annotator_stats(labels_by_annotator)


def get_admin_stats() -> AdminStatsResponse:
    """Corpus counters and the share of multi-label comments with full agreement."""
    with get_db() as conn:
        conn.execute("BEGIN")
        counts = conn.execute("""
            SELECT
                COUNT(*) AS total,
                SUM(CASE WHEN label_count >= 1 THEN 1 ELSE 0 END) AS at_least_one,
                SUM(CASE WHEN label_count >= 2 THEN 1 ELSE 0 END) AS at_least_two,
                SUM(CASE WHEN status = ? THEN 1 ELSE 0 END) AS resolved,
                SUM(CASE WHEN status = ? THEN 1 ELSE 0 END) AS needs_review,
                SUM(CASE WHEN status = ? THEN 1 ELSE 0 END) AS open
            FROM comments
        """, (STATUS_RESOLVED, STATUS_NEEDS_REVIEW, STATUS_OPEN)).fetchone()
        total_labels = conn.execute("SELECT COUNT(*) FROM labels").fetchone()[0]
        spread = conn.execute("""
            SELECT comment_id, COUNT(*) AS n, COUNT(DISTINCT label) AS distinct_labels
            FROM labels
            WHERE label != ?
            GROUP BY comment_id
            HAVING n >= 2
        """, (SKIP,)).fetchall()

    agreement_count = sum(1 for row in spread if row["distinct_labels"] == 1)
    disagreement_count = len(spread) - agreement_count

    return AdminStatsResponse(
        total_comments=counts["total"],
        total_labels=total_labels,
        comments_with_at_least_one_label=counts["at_least_one"] or 0,
        comments_with_at_least_two_labels=counts["at_least_two"] or 0,
        resolved_comments=counts["resolved"] or 0,
        needs_review_comments=counts["needs_review"] or 0,
        open_comments=counts["open"] or 0,
        agreement=AgreementSummary(
            agreement_count=agreement_count,
            disagreement_count=disagreement_count,
            agreement_rate=agreement_count / len(spread) if spread else None,
        ),
    )


def override_item(item_id: str, final_label=UNSET, status=UNSET) -> SubmissionResponse:
    """
    Set a comment's final label and/or status directly, bypassing the resolver.

    The label count is left alone; the result still satisfies "final label
    set iff resolved".
    """
    item_id = validate_item_id(item_id)
    with item_locks.hold(item_id):
        with get_db() as conn:
            conn.execute("BEGIN IMMEDIATE")
            comment = conn.execute("SELECT * FROM comments WHERE id = ?", (item_id,)).fetchone()
            if not comment:
                raise NotFoundError(item_id)

            current = outcome_from_row(comment["final_label"], comment["status"])
            outcome = apply_override(current, final_label=final_label, status=status)
            conn.execute("""
                UPDATE comments SET final_label = ?, status = ? WHERE id = ?
            """, (outcome.resolved_label, outcome.status, item_id))

    logger.info("Admin override on comment %s: %s (%s)", item_id, outcome.status, outcome.resolved_label or "-")
    return SubmissionResponse(
        id=item_id,
        final_label=outcome.resolved_label,
        status=outcome.status,
        label_count=comment["label_count"],
    )


# ============================================================================
# Export
# ============================================================================

def export_to_csv(details: list[ItemDetailResponse]) -> str:
    """Flatten comment details into CSV, one column per annotator."""
    output = io.StringIO()
    annotators = sorted({label.annotator_name for item in details for label in item.labels})

    fieldnames = ["Comment ID", "Comment Text", "Majority Label", "Final Label", "Status", "Total Labels"]
    fieldnames += [f"{annotator}'s Label" for annotator in annotators]
    fieldnames += ["Agreement %", "Fleiss Kappa"]

    writer = csv.DictWriter(output, fieldnames=fieldnames)
    writer.writeheader()

    for item in details:
        substantive_count = sum(1 for label in item.labels if not is_abstain(label.label))
        if item.kappa is not None:
            kappa = f"{item.kappa:.3f}"
        elif substantive_count == 1:
            kappa = "N/A"
        else:
            kappa = ""

        row = {
            "Comment ID": item.id,
            "Comment Text": item.text,
            "Majority Label": item.majority_label or "No Consensus",
            "Final Label": item.final_label or "Not Set",
            "Status": item.status,
            "Total Labels": len(item.labels),
            "Agreement %": f"{item.agreement_pct}%" if item.agreement_pct is not None else "",
            "Fleiss Kappa": kappa,
        }
        by_annotator = {label.annotator_name: label.label for label in item.labels}
        for annotator in annotators:
            row[f"{annotator}'s Label"] = by_annotator.get(annotator, "")
        writer.writerow(row)

    return output.getvalue()


# ============================================================================
# Admin Access
# ============================================================================

async def require_admin(
    key: Optional[str] = Query(None, description="Admin key (required when ADMIN_KEY is configured)")
) -> None:
    """Dependency to require the admin key when one is configured."""
    if not ADMIN_KEY:
        return
    if not key or not secrets.compare_digest(key, ADMIN_KEY):
        raise HTTPException(401, "Unauthorized: Invalid or missing admin key")


# ============================================================================
# API Endpoints - Annotation
# ============================================================================

@app.get(
    "/api/labels",
    tags=["Annotation"],
    summary="Get label schema",
    description="Get the fixed label set with descriptions and examples.",
)
async def get_labels():
    """Get label schema."""
    return get_label_schema()


@app.get(
    "/api/next-batch",
    tags=["Annotation"],
    summary="Get next batch",
    description="Open comments with fewer than BATCH_MAX_LABELS labels that this annotator has not labeled, fewest labels first.",
    response_model=list[BatchItem],
)
def next_batch(
    name: str = Query(..., description="Annotator name"),
    limit: Optional[int] = Query(None, ge=1, le=500, description="Override BATCH_SIZE"),
):
    """Get comments to label."""
    try:
        return get_next_batch(name, limit)
    except ConsensusError as e:
        raise http_error(e)


@app.post(
    "/api/submit-label",
    tags=["Annotation"],
    summary="Submit label",
    description="Submit one annotator's label for one comment. Returns the comment's consensus state after the update.",
    response_model=SubmissionResponse,
)
def submit_label_endpoint(submission: LabelSubmission):
    """Submit a label."""
    try:
        return submit_label(submission.item_id, submission.name, submission.label)
    except ConsensusError as e:
        logger.info("Rejected label from %r on %s: %s", submission.name, submission.item_id, e)
        raise http_error(e)


# ============================================================================
# API Endpoints - Comments
# ============================================================================

@app.get(
    "/api/items/{item_id}",
    tags=["Comments"],
    summary="Get comment detail",
    description="Comment fields, labels and agreement diagnostics (percentage, majority label, single-item Fleiss' Kappa).",
    response_model=ItemDetailResponse,
)
def item_detail(item_id: str):
    """Get a comment with agreement metrics."""
    try:
        return get_item_detail(item_id)
    except ConsensusError as e:
        raise http_error(e)


# ============================================================================
# API Endpoints - Admin
# ============================================================================

@app.get(
    "/api/admin/stats",
    tags=["Admin"],
    summary="Get corpus statistics",
    response_model=AdminStatsResponse,
)
def admin_stats(admin: None = Depends(require_admin)):
    """Get corpus counters and full-agreement rate."""
    return get_admin_stats()


@app.get(
    "/api/admin/items",
    tags=["Admin"],
    summary="List comments with agreement",
    response_model=list[ItemDetailResponse],
)
def admin_items(
    min_labels: int = Query(0, ge=0, description="Only comments with at least this many non-Skip labels"),
    admin: None = Depends(require_admin),
):
    """List all comments with labels and agreement, newest first."""
    return list_item_details(min_labels)


@app.put(
    "/api/admin/items/{item_id}",
    tags=["Admin"],
    summary="Override comment",
    description="""
Set a comment's final label and/or status directly.

- `final_label` alone resolves the comment (or reopens it when null)
- `status: open` or `needs_review` clears the final label
- `status: resolved` needs a final label, given or already stored
    """,
    response_model=SubmissionResponse,
)
def admin_override(
    item_id: str,
    override: ItemOverride,
    admin: None = Depends(require_admin),
):
    """Override a comment's consensus."""
    fields = override.model_fields_set
    try:
        return override_item(
            item_id,
            final_label=override.final_label if "final_label" in fields else UNSET,
            status=override.status if "status" in fields else UNSET,
        )
    except ConsensusError as e:
        raise http_error(e)


@app.get(
    "/api/admin/annotators",
    tags=["Admin"],
    summary="Get annotator statistics",
    description="Per-annotator disagreement with resolved labels and mean time between labels, busiest first.",
    response_model=list[AnnotatorStatsEntry],
)
def admin_annotators(admin: None = Depends(require_admin)):
    """Get annotator quality stats."""
    return [AnnotatorStatsEntry(**stats.to_dict()) for stats in get_annotator_stats()]


@app.get(
    "/api/admin/kappa",
    tags=["Admin"],
    summary="Get corpus Fleiss' Kappa",
    response_model=KappaResponse,
)
def admin_kappa(admin: None = Depends(require_admin)):
    """Get inter-rater reliability across all comments."""
    result = get_corpus_reliability()
    return KappaResponse(
        overall_kappa=result.kappa,
        interpretation=result.interpretation,
        p_bar=result.p_bar,
        p_bar_e=result.p_bar_e,
        total_comments=result.total_items,
        mean_raters=result.mean_raters,
        categories=result.categories,
        category_distribution=result.category_distribution,
        message=None if result.has_data else "No comments with at least 2 valid labels found",
    )


# ============================================================================
# API Endpoint - Export
# ============================================================================

@app.get(
    "/api/export",
    tags=["Export"],
    summary="Export labels as CSV",
    description="One row per labeled comment with majority label, final label, each annotator's label, agreement and Fleiss' Kappa.",
)
def export_labels(admin: None = Depends(require_admin)):
    """Export labeled comments as CSV."""
    details = list_item_details(min_labels=1)
    if not details:
        raise HTTPException(404, "No labeled comments found")

    return Response(
        content=export_to_csv(details),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )
