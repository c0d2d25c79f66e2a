#!/usr/bin/env python3
"""
FutureEmo Labeler MCP Server

Provides tools for labeling comments about the future of work through chat
interfaces. Uses the FastMCP framework for MCP protocol implementation.
"""

import csv
import io
import os
from pathlib import Path
from typing import Optional

import httpx
from mcp.server.fastmcp import FastMCP

from consensus.categories import CATEGORIES

from .api_client import APIConfig, FutureEmoApiClient, LabelRejected
from .session import SessionManager
from . import formatting as fmt


# Configuration from environment
API_BASE_URL = os.environ.get("FUTUREEMO_API_URL", "http://127.0.0.1:8000")
ANNOTATOR_NAME = os.environ.get("FUTUREEMO_ANNOTATOR", "mcp-annotator")
ADMIN_KEY = os.environ.get("FUTUREEMO_ADMIN_KEY") or None
STATE_FILE = Path(os.environ.get("FUTUREEMO_STATE_FILE", "futureemo_session_state.json"))


# Initialize MCP server
mcp = FastMCP(
    name="futureemo-labeler",
    instructions="""
    FutureEmo Labeler - Emotion labeling for comments about the future of work.

    Each comment gets one label: Hope, Fear, Determination or Neutral.
    Use Skip when a comment cannot be judged.

    Typical workflow:
    1. Call get_next_comment to fetch a comment
    2. Discuss with channel participants which emotion it expresses
    3. Call submit_label with the agreed label, or skip_comment
    4. Track progress with get_session_stats; check data quality with
       get_reliability, get_annotator_stats and get_corpus_stats;
       export the results with export_labels
    """
)


# Shared state
_api_client: Optional[FutureEmoApiClient] = None
_session_manager: Optional[SessionManager] = None


def get_api_client() -> FutureEmoApiClient:
    """Get or create the API client."""
    global _api_client
    if _api_client is None:
        config = APIConfig(
            base_url=API_BASE_URL,
            annotator_name=ANNOTATOR_NAME,
            admin_key=ADMIN_KEY,
        )
        _api_client = FutureEmoApiClient(config)
    return _api_client


def get_session() -> SessionManager:
    """Get or create the session manager."""
    global _session_manager
    if _session_manager is None:
        _session_manager = SessionManager(STATE_FILE)
    return _session_manager


# =============================================================================
# MCP Tools - Comment Fetching
# =============================================================================

@mcp.tool()
def get_next_comment() -> dict:
    """
    Fetch the next comment to label.

    Serves comments from the current batch, fetching a new batch from the
    labeler when the queue is empty. Comments this annotator has already
    labeled are never served.

    Returns:
        Comment id and text, or error message if nothing is left to label.
    """
    session = get_session()

    if not session.state.queue:
        session.set_queue(get_api_client().get_next_batch())

    comment = session.next_from_queue()
    if comment is None:
        return {"error": "No comments left to label"}

    return {
        "id": comment["id"],
        "text": comment["text"],
        "remaining_in_batch": len(session.state.queue),
        "display": fmt.format_comment_display(comment, remaining=len(session.state.queue)),
    }


@mcp.tool()
def get_current_comment() -> dict:
    """
    Get the comment currently being discussed.

    Returns:
        Current comment and discussion notes, or error if none active.
    """
    session = get_session()

    if session.state.current_comment is None:
        return {"error": "No current comment. Use get_next_comment first."}

    comment = session.state.current_comment
    return {
        "id": comment["id"],
        "text": comment["text"],
        "discussion_notes": list(session.state.discussion_notes),
        "display": fmt.format_comment_display(comment),
    }


@mcp.tool()
def get_comment(comment_id: str) -> dict:
    """
    Get a comment with its labels and agreement.

    Does not change the current session comment.

    Args:
        comment_id: The comment ID to fetch

    Returns:
        Comment detail including status, final label, agreement percentage,
        majority label and Fleiss' Kappa, or error if not found.
    """
    detail = get_api_client().get_item(comment_id)
    if detail is None:
        return {"error": f"Comment not found: {comment_id}"}

    detail["display"] = fmt.format_comment_detail(detail)
    return detail


# =============================================================================
# MCP Tools - Labeling
# =============================================================================

@mcp.tool()
def add_note(note: str) -> dict:
    """
    Record a discussion note about the current comment.

    Args:
        note: Free-text note (e.g. "sarcastic, reads as Fear")
    """
    session = get_session()
    if session.state.current_comment is None:
        return {"error": "No current comment. Use get_next_comment first."}

    session.add_discussion_note(note)
    return {"discussion_notes": list(session.state.discussion_notes)}


@mcp.tool()
def submit_label(label: str) -> dict:
    """
    Submit a label for the current comment.

    Args:
        label: One of Hope, Fear, Determination, Neutral

    Returns:
        The comment's consensus state after the submission.
    """
    session = get_session()

    if session.state.current_comment is None:
        return {"error": "No current comment. Use get_next_comment first."}

    label = label.strip().capitalize()
    if label not in CATEGORIES:
        return {
            "error": f"Unknown label: {label}",
            "valid_labels": list(CATEGORIES),
            "display": fmt.format_error(f"Label must be one of: {', '.join(CATEGORIES)}"),
        }

    comment_id = session.state.current_comment_id
    try:
        result = get_api_client().submit_label(comment_id, label)
    except LabelRejected as e:
        # The comment cannot take this annotator's label; move on.
        session.clear_current_comment()
        return {"error": e.detail, "display": fmt.format_error(e.detail)}

    session.mark_labeled(label)
    result["display"] = fmt.format_submission_result(result, label, session.state.labels_submitted)
    return result


@mcp.tool()
def skip_comment() -> dict:
    """
    Skip the current comment.

    Records a Skip label: the comment will not be served to this annotator
    again and its consensus is unaffected.
    """
    session = get_session()

    if session.state.current_comment is None:
        return {"error": "No current comment. Use get_next_comment first."}

    comment_id = session.state.current_comment_id
    try:
        get_api_client().submit_label(comment_id, "Skip")
    except LabelRejected as e:
        session.clear_current_comment()
        return {"error": e.detail, "display": fmt.format_error(e.detail)}

    session.mark_skipped()
    return {
        "skipped": comment_id,
        "display": f"⏭️ Skipped {comment_id}",
    }


# =============================================================================
# MCP Tools - Progress and Quality
# =============================================================================

@mcp.tool()
def get_session_stats() -> dict:
    """
    Get statistics for the current labeling session.
    """
    stats = get_session().get_session_summary()
    stats["display"] = fmt.format_session_stats(stats)
    return stats


@mcp.tool()
def reset_session() -> dict:
    """
    Reset the session, dropping the current comment, queue and counters.
    """
    session = get_session()
    session.reset_session()
    return {"reset": True, "session_started": session.state.session_started}


@mcp.tool()
def get_reliability() -> dict:
    """
    Get corpus-wide inter-rater reliability (Fleiss' Kappa).

    Requires FUTUREEMO_ADMIN_KEY when the labeler has an admin key set.
    """
    try:
        data = get_api_client().get_kappa()
    except httpx.HTTPStatusError as e:
        return _admin_error(e)
    data["display"] = fmt.format_kappa(data)
    return data


@mcp.tool()
def get_annotator_stats() -> dict:
    """
    Get per-annotator disagreement with consensus and labeling pace.

    Requires FUTUREEMO_ADMIN_KEY when the labeler has an admin key set.
    """
    try:
        entries = get_api_client().get_annotator_stats()
    except httpx.HTTPStatusError as e:
        return _admin_error(e)
    return {
        "annotators": entries,
        "display": fmt.format_annotator_stats(entries),
    }


@mcp.tool()
def get_corpus_stats() -> dict:
    """
    Get corpus counters: comments per status, labels, and the share of
    multi-label comments where every label agrees.

    Requires FUTUREEMO_ADMIN_KEY when the labeler has an admin key set.
    """
    try:
        stats = get_api_client().get_admin_stats()
    except httpx.HTTPStatusError as e:
        return _admin_error(e)
    stats["display"] = fmt.format_corpus_stats(stats)
    return stats


@mcp.tool()
def export_labels(output_path: Optional[str] = None) -> dict:
    """
    Export labeled comments as CSV.

    Args:
        output_path: Optional file to write the CSV to; without it the CSV
            text is returned inline

    Requires FUTUREEMO_ADMIN_KEY when the labeler has an admin key set.
    """
    try:
        content = get_api_client().export_csv()
    except httpx.HTTPStatusError as e:
        return _admin_error(e)
    if content is None:
        return {"error": "No labeled comments found", "display": fmt.format_error("No labeled comments found")}

    rows = len(list(csv.reader(io.StringIO(content)))) - 1
    result = {"rows": rows}
    if output_path:
        Path(output_path).write_text(content, encoding="utf-8")
        result["output_path"] = output_path
    else:
        result["csv"] = content
    result["display"] = fmt.format_export_summary(rows, output_path)
    return result


@mcp.tool()
def get_label_schema() -> dict:
    """
    Get the label schema configuration.

    Returns the four categories with descriptions and examples, and the
    Skip label.
    """
    schema = get_api_client().get_labels()
    schema["display"] = fmt.format_label_schema(schema)
    return schema


# =============================================================================
# Helper Functions
# =============================================================================

def _admin_error(error: httpx.HTTPStatusError) -> dict:
    if error.response.status_code == 401:
        message = "Admin key missing or wrong; set FUTUREEMO_ADMIN_KEY"
    else:
        message = f"Labeler returned {error.response.status_code}"
    return {"error": message, "display": fmt.format_error(message)}


# =============================================================================
# Entry Point
# =============================================================================

def main():
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
