from __future__ import annotations

import json
from typing import Any
import httpx
from pos_api.core.config import settings
from pos_api.core.errors import AIClientError

class AIClient:
    """OpenAI-compatible chat completions, JSON replies only."""

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        if not settings.AI_BASE_URL:
            raise AIClientError("AI_BASE_URL is not set")
        self.base_url = settings.AI_BASE_URL.rstrip("/")
        self.api_key = settings.AI_API_KEY
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        h: dict[str, str] = {"Content-Type": "application/json"}
        if self.api_key:
            h["Authorization"] = f"Bearer {self.api_key}"
        return h

    def complete_json(self, system_prompt: str, user_prompt: str, timeout_s: float = 30.0) -> dict[str, Any]:
        url = f"{self.base_url}/chat/completions"
        payload = {
            "model": settings.AI_MODEL,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": settings.AI_TEMPERATURE,
            "max_tokens": settings.AI_MAX_TOKENS,
            "response_format": {"type": "json_object"},
        }
        try:
            with httpx.Client(timeout=timeout_s, transport=self.transport) as c:
                r = c.post(url, json=payload, headers=self._headers())
            r.raise_for_status()
            content = r.json()["choices"][0]["message"]["content"]
            data = json.loads(content)
        except Exception as e:
            raise AIClientError(f"AI complete_json failed: {e}") from e
        if not isinstance(data, dict):
            raise AIClientError("AI reply is not a JSON object")
        return data
