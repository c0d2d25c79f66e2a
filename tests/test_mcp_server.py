"""
Tests for the MCP server's API client, session state and tools.
"""
import json

import pytest

from mcp_server import formatting as fmt
from mcp_server import server
from mcp_server.api_client import APIConfig, FutureEmoApiClient, LabelRejected
from mcp_server.session import SessionManager


@pytest.fixture
def api(client):
    """API client talking to the test app."""
    return FutureEmoApiClient(APIConfig(annotator_name="mcp-bot"), client=client)


@pytest.fixture
def session(tmp_path) -> SessionManager:
    return SessionManager(tmp_path / "state.json")


@pytest.fixture
def tools(api, session, monkeypatch):
    """Server module wired to the test app and a temporary session."""
    monkeypatch.setattr(server, "_api_client", api)
    monkeypatch.setattr(server, "_session_manager", session)
    return server


class TestApiClient:
    """Tests for FutureEmoApiClient."""

    def test_next_batch_and_submit(self, api, sample_comment):
        batch = api.get_next_batch()
        assert [item["id"] for item in batch] == [sample_comment]

        result = api.submit_label(sample_comment, "Hope")
        assert result["label_count"] == 1
        assert api.get_next_batch() == []

    def test_rejected_label(self, api, sample_comment):
        api.submit_label(sample_comment, "Hope")
        with pytest.raises(LabelRejected) as exc_info:
            api.submit_label(sample_comment, "Hope")
        assert exc_info.value.status_code == 400
        assert "already labeled" in exc_info.value.detail

    def test_missing_item(self, api):
        assert api.get_item("missing") is None

    def test_export_empty(self, api):
        assert api.export_csv() is None

    def test_admin_stats(self, api, sample_comment):
        api.submit_label(sample_comment, "Hope")
        stats = api.get_admin_stats()
        assert stats["total_comments"] == 1
        assert stats["open_comments"] == 1
        assert stats["total_labels"] == 1

    def test_admin_key_passed(self, admin_client, sample_comment):
        client, key = admin_client
        api = FutureEmoApiClient(APIConfig(admin_key=key), client=client)
        assert api.get_kappa()["overall_kappa"] is None
        assert api.get_annotator_stats() == []


class TestSessionManager:
    """Tests for persistent session state."""

    def test_queue_and_current(self, session):
        session.set_queue([{"id": "a", "text": "A"}, {"id": "b", "text": "B"}])
        assert session.next_from_queue()["id"] == "a"
        assert session.state.current_comment_id == "a"
        assert len(session.state.queue) == 1

    def test_mark_labeled(self, session):
        session.set_current_comment({"id": "a", "text": "A"})
        session.add_discussion_note("sounds hopeful")
        session.mark_labeled("Hope")
        summary = session.get_session_summary()
        assert summary["labels_submitted"] == 1
        assert summary["label_tally"] == {"Hope": 1}
        assert summary["has_current_comment"] is False
        assert session.state.discussion_notes == []

    def test_persisted_across_instances(self, session):
        session.set_queue([{"id": "a", "text": "A"}])
        session.mark_skipped()
        reloaded = SessionManager(session.state_file)
        assert reloaded.state.comments_skipped == 1
        assert reloaded.state.queue == [{"id": "a", "text": "A"}]

    def test_corrupt_file_starts_fresh(self, tmp_path):
        state_file = tmp_path / "state.json"
        state_file.write_text("{not json")
        manager = SessionManager(state_file)
        assert manager.state.labels_submitted == 0
        assert manager.state.session_started is not None

    def test_reset(self, session):
        session.mark_labeled("Fear")
        session.reset_session()
        assert session.state.labels_submitted == 0
        assert json.loads(session.state_file.read_text())["labels_submitted"] == 0


class TestTools:
    """Tests for the MCP tool functions."""

    def test_label_flow(self, tools, sample_comment):
        comment = tools.get_next_comment()
        assert comment["id"] == sample_comment
        assert "💬" in comment["display"]

        result = tools.submit_label("hope")
        assert result["status"] == "open"
        assert result["label_count"] == 1
        assert tools.get_session_stats()["labels_submitted"] == 1

    def test_no_comments(self, tools):
        assert "error" in tools.get_next_comment()

    def test_submit_without_current(self, tools):
        assert "error" in tools.submit_label("Hope")

    def test_unknown_label(self, tools, sample_comment):
        tools.get_next_comment()
        result = tools.submit_label("Joy")
        assert result["valid_labels"] == ["Hope", "Fear", "Determination", "Neutral"]
        assert tools.get_current_comment()["id"] == sample_comment

    def test_skip(self, tools, sample_comment, client):
        tools.get_next_comment()
        result = tools.skip_comment()
        assert result["skipped"] == sample_comment
        detail = client.get(f"/api/items/{sample_comment}").json()
        assert [label["label"] for label in detail["labels"]] == ["Skip"]
        assert detail["label_count"] == 0

    def test_get_comment(self, tools, sample_comment, submit):
        submit(sample_comment, "alice", "Fear")
        detail = tools.get_comment(sample_comment)
        assert detail["majority_label"] == "Fear"
        assert "Agreement" in detail["display"]
        assert "error" in tools.get_comment("missing")

    def test_reliability_needs_admin_key(self, tools, admin_client):
        result = tools.get_reliability()
        assert "FUTUREEMO_ADMIN_KEY" in result["error"]

    def test_corpus_stats(self, tools, make_comment, submit):
        agreed = make_comment()
        split = make_comment()
        submit(agreed, "alice", "Hope")
        submit(agreed, "bob", "Hope")
        submit(split, "alice", "Hope")
        submit(split, "bob", "Fear")
        result = tools.get_corpus_stats()
        assert result["total_comments"] == 2
        assert result["resolved_comments"] == 1
        assert result["agreement"]["agreement_rate"] == 0.5
        assert "50%" in result["display"]

    def test_corpus_stats_needs_admin_key(self, tools, admin_client):
        assert "FUTUREEMO_ADMIN_KEY" in tools.get_corpus_stats()["error"]

    def test_export_inline(self, tools, make_comment, submit):
        comment_id = make_comment("Line one,\nline two")
        submit(comment_id, "alice", "Neutral")
        result = tools.export_labels()
        assert result["rows"] == 1
        assert comment_id in result["csv"]
        assert "alice's Label" in result["csv"]

    def test_export_to_file(self, tools, sample_comment, submit, tmp_path):
        submit(sample_comment, "alice", "Fear")
        output = tmp_path / "labels.csv"
        result = tools.export_labels(str(output))
        assert result["output_path"] == str(output)
        assert "csv" not in result
        assert output.read_text(encoding="utf-8").startswith("Comment ID,")

    def test_export_nothing_labeled(self, tools, sample_comment):
        assert tools.export_labels()["error"] == "No labeled comments found"

    def test_reliability(self, tools, make_comment, submit):
        comment_id = make_comment()
        submit(comment_id, "alice", "Hope")
        submit(comment_id, "bob", "Hope")
        result = tools.get_reliability()
        assert result["overall_kappa"] == 1.0
        assert "Almost Perfect" in result["display"]


class TestFormatting:
    """Tests for chat formatting helpers."""

    def test_bar(self):
        assert fmt.bar(0.5) == "█████░░░░░"
        assert fmt.bar(2) == "█" * 10

    def test_kappa_no_data(self):
        text = fmt.format_kappa({"overall_kappa": None, "message": "No comments with at least 2 valid labels found"})
        assert "No comments" in text

    def test_annotator_stats(self):
        text = fmt.format_annotator_stats([{
            "annotator_name": "alice",
            "total_labels": 3,
            "disagreement_rate": 0.25,
            "avg_gap_seconds": 12.4,
        }])
        assert "alice" in text
        assert "25%" in text
        assert "12s" in text

    def test_corpus_stats_empty(self):
        text = fmt.format_corpus_stats({"total_comments": 0, "agreement": {"agreement_rate": None}})
        assert "Comments: 0" in text
        assert "n/a" in text

    def test_label_schema(self):
        text = fmt.format_label_schema({
            "categories": [{"name": "Hope", "color": "#22c55e", "description": "Optimism"}],
            "abstain_label": "Skip",
        })
        assert "Hope" in text
        assert "Skip" in text
