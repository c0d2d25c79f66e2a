"""
Tests for labeling endpoints.
"""
from fastapi.testclient import TestClient


class TestLabels:
    """Tests for /api/labels endpoint."""

    def test_get_labels(self, client: TestClient):
        """Test the label schema lists the four categories and Skip."""
        response = client.get("/api/labels")
        assert response.status_code == 200
        data = response.json()
        assert [c["name"] for c in data["categories"]] == ["Hope", "Fear", "Determination", "Neutral"]
        assert data["abstain_label"] == "Skip"
        assert "Skip" in data["valid_labels"]
        assert set(data["statuses"]) == {"open", "resolved", "needs_review"}
        for category in data["categories"]:
            assert category["description"]
            assert category["color"].startswith("#")


class TestSubmitLabel:
    """Tests for /api/submit-label endpoint."""

    def test_first_label_keeps_comment_open(self, sample_comment, submit):
        """Test a single label leaves the comment open."""
        response = submit(sample_comment, "alice", "Hope")
        assert response.status_code == 200
        assert response.json() == {
            "id": sample_comment,
            "final_label": None,
            "status": "open",
            "label_count": 1,
        }

    def test_matching_pair_resolves(self, sample_comment, submit):
        """Test two matching labels resolve the comment."""
        submit(sample_comment, "alice", "Fear")
        response = submit(sample_comment, "bob", "Fear")
        data = response.json()
        assert data["status"] == "resolved"
        assert data["final_label"] == "Fear"
        assert data["label_count"] == 2

    def test_disagreeing_pair_stays_open(self, sample_comment, submit):
        """Test two different labels wait for a third opinion."""
        submit(sample_comment, "alice", "Hope")
        data = submit(sample_comment, "bob", "Fear").json()
        assert data["status"] == "open"
        assert data["final_label"] is None

    def test_third_label_breaks_disagreement(self, sample_comment, submit):
        """Test a third label produces a plurality."""
        submit(sample_comment, "alice", "Hope")
        submit(sample_comment, "bob", "Fear")
        data = submit(sample_comment, "carol", "Hope").json()
        assert data["status"] == "resolved"
        assert data["final_label"] == "Hope"
        assert data["label_count"] == 3

    def test_three_way_split_needs_review(self, sample_comment, submit):
        """Test a tie at three labels is escalated."""
        submit(sample_comment, "alice", "Hope")
        submit(sample_comment, "bob", "Fear")
        data = submit(sample_comment, "carol", "Determination").json()
        assert data["status"] == "needs_review"
        assert data["final_label"] is None

    def test_skip_leaves_comment_unchanged(self, sample_comment, submit):
        """Test Skip is recorded without touching consensus."""
        submit(sample_comment, "alice", "Neutral")
        data = submit(sample_comment, "bob", "Skip").json()
        assert data["status"] == "open"
        assert data["label_count"] == 1

    def test_skip_does_not_count_towards_resolution(self, sample_comment, submit):
        """Test a Skip between two matching labels does not matter."""
        submit(sample_comment, "alice", "Hope")
        submit(sample_comment, "bob", "Skip")
        data = submit(sample_comment, "carol", "Hope").json()
        assert data["status"] == "resolved"
        assert data["label_count"] == 2

    def test_duplicate_submission_rejected(self, sample_comment, submit):
        """Test an annotator cannot label the same comment twice."""
        submit(sample_comment, "alice", "Hope")
        response = submit(sample_comment, "alice", "Fear")
        assert response.status_code == 400
        assert "already labeled" in response.json()["detail"]

    def test_duplicate_after_skip_rejected(self, sample_comment, submit):
        """Test Skip counts as the annotator's one label."""
        submit(sample_comment, "alice", "Skip")
        response = submit(sample_comment, "alice", "Hope")
        assert response.status_code == 400

    def test_duplicate_does_not_change_state(self, client, sample_comment, submit):
        """Test a rejected duplicate leaves the comment as it was."""
        submit(sample_comment, "alice", "Hope")
        submit(sample_comment, "alice", "Hope")
        data = client.get(f"/api/items/{sample_comment}").json()
        assert data["label_count"] == 1
        assert data["status"] == "open"
        assert len(data["labels"]) == 1

    def test_unknown_comment(self, client, submit):
        """Test labeling a missing comment returns 404."""
        response = submit("missing", "alice", "Hope")
        assert response.status_code == 404
        assert "not found" in response.json()["detail"].lower()

    def test_invalid_label(self, sample_comment, submit):
        """Test a label outside the fixed set is rejected."""
        response = submit(sample_comment, "alice", "Joy")
        assert response.status_code == 400
        assert "Label must be one of" in response.json()["detail"]

    def test_label_is_case_sensitive(self, sample_comment, submit):
        response = submit(sample_comment, "alice", "hope")
        assert response.status_code == 400

    def test_invalid_comment_id(self, submit):
        """Test a malformed comment ID is rejected before lookup."""
        response = submit("bad id!", "alice", "Hope")
        assert response.status_code == 400

    def test_blank_annotator_name(self, sample_comment, submit):
        response = submit(sample_comment, "   ", "Hope")
        assert response.status_code == 400

    def test_annotator_name_trimmed(self, sample_comment, submit):
        """Test surrounding whitespace does not create a second annotator."""
        submit(sample_comment, "alice", "Hope")
        response = submit(sample_comment, "  alice ", "Hope")
        assert response.status_code == 400

    def test_missing_field(self, client, sample_comment):
        """Test a body without a label fails validation."""
        response = client.post("/api/submit-label", json={
            "name": "alice",
            "item_id": sample_comment,
        })
        assert response.status_code == 422

    def test_resolved_comment_accepts_more_labels(self, sample_comment, submit):
        """Test later labels still count after resolution."""
        submit(sample_comment, "alice", "Fear")
        submit(sample_comment, "bob", "Fear")
        submit(sample_comment, "carol", "Hope")
        data = submit(sample_comment, "dave", "Hope").json()
        assert data["status"] == "needs_review"
        assert data["final_label"] is None
        assert data["label_count"] == 4


class TestNextBatch:
    """Tests for /api/next-batch endpoint."""

    def test_requires_name(self, client: TestClient):
        response = client.get("/api/next-batch")
        assert response.status_code == 422

    def test_empty_corpus(self, client: TestClient):
        response = client.get("/api/next-batch", params={"name": "alice"})
        assert response.status_code == 200
        assert response.json() == []

    def test_returns_open_comments(self, client, make_comment):
        """Test unlabeled comments are served with their text."""
        first = make_comment("First comment")
        second = make_comment("Second comment")
        data = client.get("/api/next-batch", params={"name": "alice"}).json()
        assert data == [
            {"id": first, "text": "First comment"},
            {"id": second, "text": "Second comment"},
        ]

    def test_excludes_own_labels(self, client, make_comment, submit):
        """Test an annotator is not served comments they labeled or skipped."""
        labeled = make_comment()
        skipped = make_comment()
        fresh = make_comment()
        submit(labeled, "alice", "Hope")
        submit(skipped, "alice", "Skip")
        ids = [item["id"] for item in client.get("/api/next-batch", params={"name": "alice"}).json()]
        assert ids == [fresh]

    def test_other_annotators_still_served(self, client, sample_comment, submit):
        submit(sample_comment, "alice", "Hope")
        ids = [item["id"] for item in client.get("/api/next-batch", params={"name": "bob"}).json()]
        assert ids == [sample_comment]

    def test_excludes_resolved(self, client, sample_comment, submit):
        submit(sample_comment, "alice", "Hope")
        submit(sample_comment, "bob", "Hope")
        data = client.get("/api/next-batch", params={"name": "carol"}).json()
        assert data == []

    def test_disagreeing_pair_served_for_third_opinion(self, client, sample_comment, submit):
        """Test an open comment with two differing labels is still served."""
        submit(sample_comment, "alice", "Hope")
        submit(sample_comment, "bob", "Fear")
        ids = [item["id"] for item in client.get("/api/next-batch", params={"name": "carol"}).json()]
        assert ids == [sample_comment]

    def test_fewest_labels_first(self, client, make_comment, submit):
        """Test comments with fewer labels come first."""
        busy = make_comment()
        quiet = make_comment()
        submit(busy, "bob", "Hope")
        ids = [item["id"] for item in client.get("/api/next-batch", params={"name": "alice"}).json()]
        assert ids == [quiet, busy]

    def test_limit(self, client, make_comment):
        for _ in range(5):
            make_comment()
        data = client.get("/api/next-batch", params={"name": "alice", "limit": 2}).json()
        assert len(data) == 2

    def test_default_batch_size(self, client, app_module, make_comment, monkeypatch):
        monkeypatch.setattr(app_module, "BATCH_SIZE", 3)
        for _ in range(5):
            make_comment()
        data = client.get("/api/next-batch", params={"name": "alice"}).json()
        assert len(data) == 3

    def test_limit_out_of_range(self, client: TestClient):
        response = client.get("/api/next-batch", params={"name": "alice", "limit": 0})
        assert response.status_code == 422
