"""
API client for the FutureEmo Labeler backend.

Wraps all HTTP calls to the FastAPI backend, passing the annotator name and
admin key and parsing responses.
"""

import httpx
from dataclasses import dataclass
from typing import Optional


@dataclass
class APIConfig:
    """Configuration for the API client."""
    base_url: str = "http://127.0.0.1:8000"
    annotator_name: str = "mcp-annotator"
    admin_key: Optional[str] = None
    timeout: float = 30.0


class LabelRejected(Exception):
    """The backend refused a label (bad label, duplicate, unknown comment)."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


class FutureEmoApiClient:
    """
    Client for the FutureEmo Labeler API.

    Annotation calls are made as ``config.annotator_name``; admin calls pass
    ``config.admin_key`` when one is configured.
    """

    def __init__(self, config: Optional[APIConfig] = None, client: Optional[httpx.Client] = None):
        self.config = config or APIConfig()
        self._client = client or httpx.Client(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            follow_redirects=True,
        )

    def _admin_params(self) -> dict:
        return {"key": self.config.admin_key} if self.config.admin_key else {}

    def get_next_batch(self, limit: Optional[int] = None) -> list[dict]:
        """
        Get comments this annotator has not labeled yet.

        Returns an empty list when nothing is left to label.
        """
        params = {"name": self.config.annotator_name}
        if limit:
            params["limit"] = limit
        response = self._client.get("/api/next-batch", params=params)
        response.raise_for_status()
        return response.json()

    def submit_label(self, item_id: str, label: str) -> dict:
        """
        Submit a label for a comment.

        Raises:
            LabelRejected: if the backend rejects the label.
        """
        response = self._client.post("/api/submit-label", json={
            "name": self.config.annotator_name,
            "item_id": item_id,
            "label": label,
        })
        if response.status_code in (400, 404, 422):
            raise LabelRejected(response.status_code, _detail(response))
        response.raise_for_status()
        return response.json()

    def get_item(self, item_id: str) -> Optional[dict]:
        """Get a comment with its labels and agreement, or None if missing."""
        response = self._client.get(f"/api/items/{item_id}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    def get_labels(self) -> dict:
        """Get label schema configuration."""
        response = self._client.get("/api/labels")
        response.raise_for_status()
        return response.json()

    def get_admin_stats(self) -> dict:
        """Get corpus counters (admin)."""
        response = self._client.get("/api/admin/stats", params=self._admin_params())
        response.raise_for_status()
        return response.json()

    def get_kappa(self) -> dict:
        """Get corpus-wide Fleiss' Kappa (admin)."""
        response = self._client.get("/api/admin/kappa", params=self._admin_params())
        response.raise_for_status()
        return response.json()

    def get_annotator_stats(self) -> list[dict]:
        """Get per-annotator disagreement and pace (admin)."""
        response = self._client.get("/api/admin/annotators", params=self._admin_params())
        response.raise_for_status()
        return response.json()

    def export_csv(self) -> Optional[str]:
        """Get the CSV export, or None when nothing has been labeled."""
        response = self._client.get("/api/export", params=self._admin_params())
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.text

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def _detail(response: httpx.Response) -> str:
    try:
        detail = response.json().get("detail")
    except ValueError:
        return response.text
    if isinstance(detail, list):
        return "; ".join(str(error.get("msg", error)) for error in detail)
    return str(detail)
