"""HTTP client for the remote diagnosis service."""

import logging
from typing import Any

import requests

from opsctrl.config import get_api_url, get_http_timeout

logger = logging.getLogger(__name__)


class EscalationError(Exception):
    def __init__(self, status: int | None, message: str):
        super().__init__(
            f"Backend returned error {status}: {message}" if status else message
        )
        self.status = status


class RemoteDiagnosisClient:
    """
    Single-attempt client for POST <api_url>/diagnose.

    Retries, if wanted, belong to the caller.
    """

    def __init__(
        self,
        token: str,
        api_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        self.token = token
        self.api_url = (api_url or get_api_url()).rstrip("/")
        self.timeout = timeout if timeout is not None else get_http_timeout()
        self.session = session or requests.Session()

    def diagnose(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.api_url}/diagnose"
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

        logger.debug("Escalating %s/%s to %s", payload.get("namespace"), payload.get("podName"), url)
        try:
            response = self.session.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise EscalationError(None, f"Failed to reach diagnosis service: {e}") from e

        if not response.ok:
            raise EscalationError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise EscalationError(response.status_code, "Response is not valid JSON") from e

        if not isinstance(data, dict):
            return {"diagnosis": data}
        return data
