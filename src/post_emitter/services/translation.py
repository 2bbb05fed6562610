"""Machine translation of post text through an OpenAI-compatible API."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

from post_emitter.core.settings import Settings

logger = logging.getLogger(__name__)

SHORTCODE_PATTERN = re.compile(r"\[([a-zA-Z0-9_-]+)(.*?)(\](.*?)\[/\1\]|\])", re.DOTALL)
SPAN_PATTERN = re.compile(r"<span\b[^>]*>(.*?)</span>", re.IGNORECASE | re.DOTALL)
PLACEHOLDER = "%%SHORTCODE%%"

LANGUAGE_NAMES = {
    "pt_BR": "Brazilian Portuguese",
    "pt_PT": "European Portuguese",
    "en_US": "American English",
    "en_GB": "British English",
    "es_ES": "Spanish (Spain)",
    "fr_FR": "French (France)",
    "de_DE": "German (Germany)",
}


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code)


def protect_shortcodes(text: str) -> tuple[str, dict[str, str]]:
    """Replace shortcodes with numbered placeholders."""
    shortcodes: dict[str, str] = {}

    def _replace(match: re.Match[str]) -> str:
        key = f"{PLACEHOLDER}{len(shortcodes)}"
        shortcodes[key] = match.group(0)
        return key

    return SHORTCODE_PATTERN.sub(_replace, text), shortcodes


def restore_shortcodes(text: str, shortcodes: dict[str, str]) -> str:
    # Highest index first so %%SHORTCODE%%1 never clobbers %%SHORTCODE%%10.
    for key in sorted(shortcodes, key=lambda k: int(k[len(PLACEHOLDER):]), reverse=True):
        text = text.replace(key, shortcodes[key])
    return text


def strip_spans(text: str) -> str:
    return SPAN_PATTERN.sub(r"\1", text)


def build_instruction(source: str, target: str, context: str) -> str:
    source_name = language_name(source)
    target_name = language_name(target)
    if context == "title":
        subject = "title"
    elif context == "body":
        subject = f"content, keeping HTML structure and every {PLACEHOLDER} placeholder intact"
    else:
        subject = "text"
    return f"Translate the following {subject} from {source_name} to {target_name}."


@dataclass(frozen=True)
class TranslationConfig:
    api_key: str | None
    base_url: str
    model: str
    timeout_seconds: float
    max_attempts: int
    temperature: float = 0.3
    max_tokens: int = 2000


def load_translation_config(settings: Settings) -> TranslationConfig:
    return TranslationConfig(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url.rstrip("/"),
        model=settings.translation_model,
        timeout_seconds=float(settings.translation_timeout_seconds),
        max_attempts=settings.translation_max_attempts,
    )


class Translator:
    """Translates text while keeping shortcodes untouched.

    Failures never propagate: the cleaned source text is returned instead.
    """

    def __init__(
        self, config: TranslationConfig, *, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def translate(
        self, text: str, source: str, target: str, context: str = "default"
    ) -> str:
        if source == target or not text:
            return text

        clean_text, shortcodes = protect_shortcodes(text)
        clean_text = strip_spans(clean_text)

        if not self.config.api_key:
            logger.warning("Translation API key not configured; returning cleaned text")
            return restore_shortcodes(clean_text, shortcodes)

        instruction = build_instruction(source, target, context)
        translated = ""
        for attempt in range(1, self.config.max_attempts + 1):
            candidate = await self._request_translation(instruction, clean_text, context, attempt)
            if candidate:
                translated = candidate
                if candidate.strip().lower() != clean_text.strip().lower():
                    break

        return restore_shortcodes(translated or clean_text, shortcodes)

    async def _request_translation(
        self, instruction: str, text: str, context: str, attempt: int
    ) -> str:
        payload: dict[str, Any] = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": instruction},
                {"role": "user", "content": text},
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        headers = {"Authorization": f"Bearer {self.config.api_key}"}

        try:
            client = await self._ensure_client()
            response = await client.post("/chat/completions", json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(
                "Translation request (%s) failed on attempt %d: %s", context, attempt, exc
            )
            return ""

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            logger.error("Invalid translation response (%s) on attempt %d", context, attempt)
            return ""
        if not isinstance(content, str):
            logger.error("Invalid translation response (%s) on attempt %d", context, attempt)
            return ""
        return content.strip()

    async def close(self) -> None:
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None
