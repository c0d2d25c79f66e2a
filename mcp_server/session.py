"""
Session state management for labeling sessions.

Tracks the batch of comments fetched from the backend, the comment currently
being discussed and what has been labeled so far.
"""

import json
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import Optional

from consensus.logging_utils import get_logger

logger = get_logger("futureemo.mcp.session")


@dataclass
class SessionState:
    """
    Current labeling session state.

    Persisted to disk so sessions survive restarts.
    """
    # Comment being discussed
    current_comment_id: Optional[str] = None
    current_comment: Optional[dict] = None

    # Comments fetched but not yet shown
    queue: list[dict] = field(default_factory=list)

    # Notes taken while discussing the current comment
    discussion_notes: list[str] = field(default_factory=list)

    # Session stats
    labels_submitted: int = 0
    comments_skipped: int = 0
    label_tally: dict[str, int] = field(default_factory=dict)
    session_started: Optional[str] = None


class SessionManager:
    """
    Manages persistent session state.

    State is saved to a JSON file so it survives server restarts.
    """

    def __init__(self, state_file: Optional[Path] = None):
        self.state_file = state_file or Path("session_state.json")
        self._state: Optional[SessionState] = None

    @property
    def state(self) -> SessionState:
        """Get current state, loading from disk if needed."""
        if self._state is None:
            self._state = self._load_state()
        return self._state

    def _load_state(self) -> SessionState:
        """Load state from disk, or create new."""
        if self.state_file.exists():
            try:
                with open(self.state_file) as f:
                    return SessionState(**json.load(f))
            except (OSError, ValueError, TypeError) as e:
                logger.warning("Ignoring unreadable session file %s: %s", self.state_file, e)
        return SessionState(session_started=datetime.now().isoformat())

    def _save_state(self) -> None:
        """Save state to disk."""
        if self._state is None:
            return
        with open(self.state_file, "w") as f:
            json.dump(asdict(self._state), f, indent=2)

    def set_queue(self, comments: list[dict]) -> None:
        """Replace the queue with a freshly fetched batch."""
        self.state.queue = list(comments)
        self._save_state()

    def next_from_queue(self) -> Optional[dict]:
        """Pop the next queued comment and make it current."""
        if not self.state.queue:
            return None
        comment = self.state.queue.pop(0)
        self.set_current_comment(comment)
        return comment

    def set_current_comment(self, comment: dict) -> None:
        """Set the comment being discussed."""
        self.state.current_comment_id = comment.get("id")
        self.state.current_comment = comment
        self.state.discussion_notes = []
        self._save_state()

    def clear_current_comment(self) -> None:
        """Clear the current comment (after submit/skip)."""
        self.state.current_comment_id = None
        self.state.current_comment = None
        self.state.discussion_notes = []
        self._save_state()

    def add_discussion_note(self, note: str) -> None:
        """Add a discussion note."""
        self.state.discussion_notes.append(note)
        self._save_state()

    def mark_labeled(self, label: str) -> None:
        """Record a submitted label and move past the current comment."""
        self.state.labels_submitted += 1
        self.state.label_tally[label] = self.state.label_tally.get(label, 0) + 1
        self.clear_current_comment()

    def mark_skipped(self) -> None:
        """Record a Skip and move past the current comment."""
        self.state.comments_skipped += 1
        self.clear_current_comment()

    def get_session_summary(self) -> dict:
        """Get a summary of the current session."""
        return {
            "current_comment_id": self.state.current_comment_id,
            "has_current_comment": self.state.current_comment is not None,
            "queued_comments": len(self.state.queue),
            "labels_submitted": self.state.labels_submitted,
            "comments_skipped": self.state.comments_skipped,
            "label_tally": dict(self.state.label_tally),
            "session_started": self.state.session_started,
        }

    def reset_session(self) -> None:
        """Reset the session state entirely."""
        self._state = SessionState(session_started=datetime.now().isoformat())
        self._save_state()
