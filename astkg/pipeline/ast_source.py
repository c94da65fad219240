"""
AST Source Client
=================

HTTP client for the AST analysis service.

The service analyses asynchronously:

1. ``POST {endpoint}/analyze`` -> ``data.analysisId``
2. ``GET {endpoint}/status/{id}`` until COMPLETED / SUCCESS
3. ``GET {endpoint}/results/{id}`` -> snapshot in ``data``

Every response wraps its payload in a ``data`` envelope.
"""

import asyncio
import aiohttp
import structlog
from dataclasses import dataclass
from typing import Any, Dict, Optional

from astkg.models import ASTSnapshot

log = structlog.get_logger()

DONE_STATES = {"COMPLETED", "SUCCESS"}
FAILED_STATES = {"FAILED", "ERROR"}


@dataclass
class ASTSourceConfig:
    """
    Polling and timeout settings.

    Attributes:
        request_timeout_seconds: Total timeout per HTTP request
        poll_interval_seconds: Delay between status polls
        max_poll_attempts: Status polls before giving up
    """
    request_timeout_seconds: float = 30.0
    poll_interval_seconds: float = 5.0
    max_poll_attempts: int = 60

    def __post_init__(self):
        if self.max_poll_attempts < 1:
            raise ValueError(f"max_poll_attempts must be >= 1, got {self.max_poll_attempts}")
        if self.poll_interval_seconds < 0:
            raise ValueError(f"poll_interval_seconds must be >= 0, got {self.poll_interval_seconds}")


class ASTSourceClient:
    """
    Fetches the AST snapshot of a codebase.

    Example:
        client = ASTSourceClient()
        snapshot = await client.fetch_ast("http://ast-service:8080/api/v1")
        if snapshot is None or snapshot.is_empty:
            ...
    """

    def __init__(self, config: Optional[ASTSourceConfig] = None):
        self.config = config or ASTSourceConfig()

    async def fetch_ast(self, endpoint: str) -> Optional[ASTSnapshot]:
        """
        Run a full analysis and return its snapshot.

        Args:
            endpoint: Base URL of the AST service

        Returns:
            The snapshot, or None when the service returned no data

        Raises:
            RuntimeError: If the analysis fails, times out, or a response
                is missing its envelope
        """
        endpoint = endpoint.rstrip("/")
        log.info(f"Starting AST analysis at {endpoint}")

        timeout = aiohttp.ClientTimeout(total=self.config.request_timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            analysis_id = await self._start_analysis(session, endpoint)
            log.info(f"Analysis started with ID: {analysis_id}")

            await self._wait_for_completion(session, endpoint, analysis_id)
            log.info(f"Analysis completed for ID: {analysis_id}")

            data = await self._get_results(session, endpoint, analysis_id)

        if data is None:
            log.warning(f"AST service returned no data for analysis {analysis_id}")
            return None

        snapshot = ASTSnapshot.from_dict(data)
        log.info(f"Fetched AST snapshot: {snapshot.summary()}")
        return snapshot

    async def _request_json(
        self,
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        async with session.request(method, url, json=json) as response:
            if response.status != 200:
                error_text = await response.text()
                raise RuntimeError(f"AST service error {response.status} on {url}: {error_text}")
            return await response.json()

    async def _start_analysis(self, session: aiohttp.ClientSession, endpoint: str) -> str:
        body = await self._request_json(session, "POST", f"{endpoint}/analyze", json={})
        data = body.get("data") if body else None
        if not data or "analysisId" not in data:
            raise RuntimeError("Failed to start analysis - no analysis ID returned")
        return str(data["analysisId"])

    async def _wait_for_completion(
        self,
        session: aiohttp.ClientSession,
        endpoint: str,
        analysis_id: str,
    ) -> None:
        for attempt in range(self.config.max_poll_attempts):
            body = await self._request_json(session, "GET", f"{endpoint}/status/{analysis_id}")
            data = body.get("data") if body else None
            if data is None:
                raise RuntimeError(f"Failed to get status for analysis ID: {analysis_id}")

            state = str(data.get("status", "")).upper()
            log.debug(f"Analysis {analysis_id} status: {state} (poll {attempt + 1})")

            if state in DONE_STATES:
                return
            if state in FAILED_STATES:
                raise RuntimeError(f"Analysis failed: {data.get('error', 'Unknown error')}")

            await asyncio.sleep(self.config.poll_interval_seconds)

        waited = self.config.max_poll_attempts * self.config.poll_interval_seconds
        raise RuntimeError(f"Analysis timed out after {waited:.0f} seconds")

    async def _get_results(
        self,
        session: aiohttp.ClientSession,
        endpoint: str,
        analysis_id: str,
    ) -> Optional[Dict[str, Any]]:
        log.info(f"Fetching results for analysis ID: {analysis_id}")
        body = await self._request_json(session, "GET", f"{endpoint}/results/{analysis_id}")
        return body.get("data") if body else None
