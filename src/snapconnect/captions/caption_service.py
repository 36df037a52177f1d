"""Caption suggestions through an OpenAI-style chat completions API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..config import CaptionSettings
from ..exceptions import AppError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_TEMPLATE = """You are a witty college student helping create engaging social media captions.
Generate 1 short, fun caption (under 100 characters) that is:
- Relatable to college students
- Uses appropriate emojis
- Captures the vibe of the moment
- Encourages engagement
- Authentic and not overly polished

Context: {user_prompt}

Return only the caption text, nothing else."""


class CaptionError(AppError):
    """Caption generation failed; ``public_message`` is safe to return to clients."""

    def __init__(self, public_message: str, *, detail: str | None = None) -> None:
        super().__init__(detail or public_message)
        self.public_message = public_message
        self.detail = detail


@dataclass(slots=True)
class CaptionService:
    settings: CaptionSettings
    max_tokens: int = 100
    temperature: float = 0.8
    log: logging.Logger = field(default_factory=lambda: logger)

    async def generate(self, user_prompt: str) -> str:
        api_key = self.settings.api_key
        if not api_key:
            self.log.error("captions.api_key_missing")
            raise CaptionError("AI service temporarily unavailable")

        payload = {
            "model": self.settings.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT_TEMPLATE.format(user_prompt=user_prompt)}
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        self.log.info(
            "captions.request.start",
            extra={"model": self.settings.model, "prompt_len": len(user_prompt)},
        )
        try:
            response = await self._post(api_key=api_key, payload=payload)
        except httpx.HTTPError as exc:
            self.log.error("captions.request.http_error", extra={"error": str(exc)})
            raise CaptionError("Failed to generate caption", detail=str(exc)) from exc

        if response.status_code != 200:
            self.log.error(
                "captions.response.error",
                extra={"http_status": response.status_code, "body_preview": response.text[:500]},
            )
            raise CaptionError(
                "Failed to generate caption",
                detail=f"status={response.status_code}",
            )

        caption = _extract_caption(response)
        if not caption:
            raise CaptionError("No caption generated")
        self.log.info("captions.request.success", extra={"caption_len": len(caption)})
        return caption

    async def _post(self, *, api_key: str, payload: dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.settings.timeout_seconds) as client:
            return await client.post(
                self.settings.endpoint,
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )


def _extract_caption(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    choices = data.get("choices") if isinstance(data, dict) else None
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message") or {}
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if not isinstance(content, str):
        return None
    return content.strip() or None


__all__ = ["CaptionError", "CaptionService", "SYSTEM_PROMPT_TEMPLATE"]
