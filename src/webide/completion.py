"""Pass-through client for the code completion service.

The prompt is wrapped in the generative-text request shape and the raw
JSON answer is returned untouched.  There is no retry and no
post-processing.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .config import DEFAULT_COMPLETION_URL
from .errors import TransportFailure

logger = logging.getLogger(__name__)


class CompletionClient:
    def __init__(
        self,
        api_key: Optional[str],
        url: str = DEFAULT_COMPLETION_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def complete(self, prompt: str) -> Any:
        if not self.api_key:
            raise TransportFailure("API key not configured")
        payload: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, params={"key": self.api_key}, json=payload)
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Completion request failed: %s", exc)
            raise TransportFailure(str(exc)) from exc
