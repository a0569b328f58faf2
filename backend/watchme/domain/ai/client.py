"""Gemini ``generateContent`` client returning JSON-typed responses."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from watchme.domain.ai.exceptions import AIResponseInvalid, AIUnavailable
from watchme.settings import settings

logger = logging.getLogger(__name__)


@dataclass
class GeminiClient:
	http: httpx.AsyncClient
	api_key: Optional[str] = field(default_factory=lambda: settings.gemini_api_key)
	model: str = field(default_factory=lambda: settings.gemini_model)
	base_url: str = field(default_factory=lambda: settings.gemini_base_url)

	def _endpoint(self) -> str:
		return f"{self.base_url.rstrip('/')}/models/{self.model}:generateContent"

	async def generate_json(self, prompt: str, response_schema: Dict[str, Any]) -> Dict[str, Any]:
		"""Send one prompt and decode the model's JSON answer."""
		if not self.api_key:
			raise AIUnavailable("ai_not_configured")
		body = {
			"contents": [{"role": "user", "parts": [{"text": prompt}]}],
			"generationConfig": {
				"responseMimeType": "application/json",
				"responseSchema": response_schema,
			},
		}
		try:
			response = await self.http.post(self._endpoint(), params={"key": self.api_key}, json=body)
		except httpx.HTTPError as exc:
			logger.warning("model request failed", extra={"model": self.model, "error": str(exc)})
			raise AIUnavailable("ai_unreachable") from exc
		if response.status_code >= 400:
			logger.warning("model error response", extra={"model": self.model, "status": response.status_code})
			raise AIUnavailable(f"ai_status_{response.status_code}")
		try:
			payload = response.json()
			text = payload["candidates"][0]["content"]["parts"][0]["text"]
			decoded = json.loads(text)
		except (ValueError, KeyError, IndexError, TypeError) as exc:
			raise AIResponseInvalid() from exc
		if not isinstance(decoded, dict):
			raise AIResponseInvalid()
		return decoded
