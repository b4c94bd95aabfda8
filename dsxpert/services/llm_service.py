"""
LLM Service - Handles interactions with the generative-AI providers
"""

from __future__ import annotations

import asyncio
import json
import re
from contextlib import asynccontextmanager
from typing import Any

import aiohttp

from dsxpert.log import get_logger

logger = get_logger("dsxpert.llm")

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"

RETRYABLE_STATUSES = (429, 503)

_FENCE_OPEN = re.compile(r"```[\w#+-]*[ \t]*\n?")


class LLMServiceError(Exception):
    """Raised when a provider cannot produce a usable response"""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences the model wraps around code"""
    return _FENCE_OPEN.sub("", text).replace("```", "").strip()


def parse_json_from_response(response: str) -> Any:
    """Parse JSON from LLM response, handling code blocks"""
    # Try to extract JSON from code block
    json_match = re.search(r"```(?:json)?\s*([\s\S]*?)```", response)
    if json_match:
        json_str = json_match.group(1).strip()
    else:
        json_str = response.strip()

    try:
        return json.loads(json_str)
    except json.JSONDecodeError as e:
        # Try to find JSON object in response
        brace_start = json_str.find("{")
        brace_end = json_str.rfind("}") + 1
        if brace_start >= 0 and brace_end > brace_start:
            try:
                return json.loads(json_str[brace_start:brace_end])
            except json.JSONDecodeError:
                pass
        raise LLMServiceError(f"Failed to parse JSON: {e}")


class LLMService:
    """Service for interacting with the configured LLM provider"""

    def __init__(self, config: dict[str, Any]):
        self.config = config
        self.provider = config.get("provider", "gemini")
        self.max_retries = max(1, int(config.get("maxRetries", 3)))
        self.timeout_seconds = int(config.get("timeoutSeconds", 60))

    # ========== Config Helpers ==========

    def _get_gemini_config(self) -> tuple[str, str, str]:
        """Get Gemini config: (api_key, model, url). Raises if api_key missing."""
        cfg = self.config.get("gemini", {})
        api_key = cfg.get("apiKey")
        if not api_key:
            raise LLMServiceError("Gemini API key not configured. Set GEMINI_API_KEY.")
        model = cfg.get("model", "gemini-1.5-pro-002")
        url = f"{GEMINI_BASE_URL}/{model}:generateContent?key={api_key}"
        return api_key, model, url

    def _get_openai_config(self) -> tuple[str, str, dict[str, str]]:
        """Get OpenAI config: (model, url, headers). Raises if api_key missing."""
        cfg = self.config.get("openai", {})
        api_key = cfg.get("apiKey")
        if not api_key:
            raise LLMServiceError("OpenAI API key not configured. Set OPENAI_API_KEY.")
        model = cfg.get("model", "gpt-4")
        headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
        return model, OPENAI_CHAT_URL, headers

    # ========== Message/Payload Builders ==========

    def _build_prompt(self, prompt: str, context: str | None = None) -> str:
        """Build full prompt with optional context"""
        if context:
            return f"Context:\n{context}\n\nUser Request:\n{prompt}"
        return prompt

    def _build_openai_messages(self, prompt: str, context: str | None = None) -> list:
        """Build OpenAI-style messages array"""
        messages = []
        if context:
            messages.append({"role": "system", "content": f"Context:\n{context}"})
        messages.append({"role": "user", "content": prompt})
        return messages

    def _build_openai_payload(
        self,
        model: str,
        messages: list,
        max_tokens: int = 4096,
        temperature: float = 0.0,
    ) -> dict[str, Any]:
        """Build OpenAI-compatible request payload"""
        return {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

    def _build_gemini_payload(self, prompt: str, max_output_tokens: int = 8192) -> dict[str, Any]:
        """Build Gemini API request payload"""
        cfg = self.config.get("gemini", {})
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": cfg.get("temperature", 0.0),
                "topK": 1,
                "topP": 0.95,
                "maxOutputTokens": max_output_tokens,
            },
        }

    # ========== Transport ==========

    async def _retry_with_backoff(self, operation, provider: str = "API"):
        """Execute operation, retrying timeouts and rate-limit/overload responses"""
        for attempt in range(self.max_retries):
            last_attempt = attempt == self.max_retries - 1
            try:
                return await operation()
            except asyncio.TimeoutError:
                if last_attempt:
                    raise LLMServiceError(f"{provider} request timeout after {self.max_retries} attempt(s)")
                wait_time = (2**attempt) * 3
                logger.warning(
                    f"{provider} request timeout. Retrying in {wait_time}s... "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(wait_time)
            except LLMServiceError as e:
                if e.status not in RETRYABLE_STATUSES or last_attempt:
                    raise
                wait_time = (2**attempt) * 5
                logger.warning(
                    f"{provider} returned {e.status}. Retrying in {wait_time}s... "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(wait_time)
            except aiohttp.ClientError as e:
                if last_attempt:
                    raise LLMServiceError(f"{provider} network error: {e}")
                wait_time = (2**attempt) * 2
                logger.warning(
                    f"{provider} network error: {e}. Retrying in {wait_time}s... "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(wait_time)

    @asynccontextmanager
    async def _request(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        provider: str = "API",
    ):
        """Context manager for HTTP POST requests with automatic session cleanup"""
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(url, json=payload, headers=headers) as response:
                if response.status != 200:
                    error_text = await response.text()
                    logger.error(f"{provider} API error ({response.status}): {error_text[:500]}")
                    raise LLMServiceError(
                        f"{provider} API error ({response.status}): {error_text[:200]}",
                        status=response.status,
                    )
                yield response

    async def _request_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        provider: str = "API",
    ) -> dict[str, Any]:
        """Make request (with retries) and return JSON response"""

        async def _execute_request():
            async with self._request(url, payload, headers, provider) as response:
                return await response.json()

        return await self._retry_with_backoff(_execute_request, provider)

    # ========== Response Parsers ==========

    def _parse_openai_response(self, data: dict[str, Any]) -> str:
        """Parse OpenAI-compatible response format"""
        if "choices" in data and len(data["choices"]) > 0:
            choice = data["choices"][0]
            if "message" in choice and "content" in choice["message"]:
                return choice["message"]["content"]
            elif "text" in choice:
                return choice["text"]
        raise LLMServiceError("No valid response from OpenAI API")

    def _parse_gemini_response(self, data: dict[str, Any]) -> str:
        """Parse Gemini API response format"""
        if "candidates" in data and len(data["candidates"]) > 0:
            candidate = data["candidates"][0]
            if "content" in candidate and "parts" in candidate["content"]:
                parts = candidate["content"]["parts"]
                if len(parts) > 0 and "text" in parts[0]:
                    return parts[0]["text"]
        raise LLMServiceError("No valid response from Gemini API")

    # ========== Providers ==========

    async def generate_response(self, prompt: str, context: str | None = None) -> str:
        """Generate a response from the configured LLM provider"""
        if self.provider == "gemini":
            return await self._call_gemini(prompt, context)
        elif self.provider == "openai":
            return await self._call_openai(prompt, context)
        else:
            raise LLMServiceError(f"Unsupported provider: {self.provider}")

    async def _call_gemini(self, prompt: str, context: str | None = None) -> str:
        """Call Google Gemini API"""
        _, model, url = self._get_gemini_config()
        logger.info(f"Calling Gemini API with model: {model}")

        payload = self._build_gemini_payload(self._build_prompt(prompt, context))
        data = await self._request_json(url, payload, provider="Gemini")
        response_text = self._parse_gemini_response(data)

        logger.info(f"Received response from {model} (length: {len(response_text)} chars)")
        return response_text

    async def _call_openai(self, prompt: str, context: str | None = None) -> str:
        """Call OpenAI API"""
        model, url, headers = self._get_openai_config()
        logger.info(f"Calling OpenAI API with model: {model}")

        messages = self._build_openai_messages(prompt, context)
        payload = self._build_openai_payload(model, messages)
        data = await self._request_json(url, payload, headers, provider="OpenAI")
        return self._parse_openai_response(data)
