from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from .config import (
    HTTP_CONNECT_TIMEOUT,
    HTTP_READ_TIMEOUT,
    HTTP_USER_AGENT,
    FeedbackMetrics,
    TalentMatchingRequest,
    TalentMatchingResponse,
)


class TalentMatchingAPIError(Exception):
    def __init__(self, message: str, details: Any = None, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.status = status


class TalentMatchingClient:
    """
    Thin HTTP client for the talent matching service.

    Pass ``client`` to reuse a connection pool (or a ``TestClient``);
    otherwise each call opens its own short-lived ``httpx.Client``.
    """

    def __init__(self, base_url: str = "http://localhost:8000", client: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        self._client = client

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json", "User-Agent": HTTP_USER_AGENT}
        if self._client is not None:
            r = self._client.post(url, json=payload, headers=headers)
        else:
            with httpx.Client(
                timeout=httpx.Timeout(HTTP_READ_TIMEOUT, connect=HTTP_CONNECT_TIMEOUT),
            ) as client:
                r = client.post(url, json=payload, headers=headers)

        try:
            data = r.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if r.status_code >= 400:
            message = data.get("error") or data.get("detail") or f"HTTP {r.status_code}"
            logger.warning("Talent matching API error {} for {}: {}", r.status_code, path, message)
            raise TalentMatchingAPIError(
                message=str(message),
                details=data.get("details"),
                status=r.status_code,
            )
        return data

    def find_matches(self, params: TalentMatchingRequest) -> TalentMatchingResponse:
        payload = params.model_dump(by_alias=True, exclude_none=True)
        data = self._post("/api/talent-matching", payload)
        return TalentMatchingResponse.model_validate(data)

    def feedback_metrics(self, candidate_ids: List[str], feedback: Dict[str, bool]) -> FeedbackMetrics:
        data = self._post(
            "/api/talent-matching/feedback-metrics",
            {"candidateIds": list(candidate_ids), "feedback": dict(feedback)},
        )
        return FeedbackMetrics.model_validate(data)
