"""OpenAI Chat Completions client with structured (json_schema) output."""

import logging
import time
from typing import Optional

import requests

from attune.config import settings

logger = logging.getLogger(__name__)


class LLMClientError(Exception):
    """Base class for failures talking to the LLM provider."""


class InvalidResponseError(LLMClientError):
    """Response had no usable message content."""

    def __init__(self, message: str = "Invalid response from OpenAI API"):
        super().__init__(message)


class HTTPStatusError(LLMClientError):
    """Provider answered with a non-2xx status."""

    def __init__(self, status_code: int, body: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP {status_code}: {body or 'no body'}")


class RequestTimeoutError(LLMClientError):
    """Request did not complete within the timeout."""

    def __init__(self, message: str = "Request timed out"):
        super().__init__(message)


class NetworkError(LLMClientError):
    """Connection-level failure."""


class DecodingError(LLMClientError):
    """Response body was not a chat-completion envelope."""


class OpenAIClient:
    """Minimal client for POST /chat/completions."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize client.

        Args:
            api_key: OpenAI API key (defaults to settings)
            base_url: API base URL, e.g. https://api.openai.com/v1
            timeout: Request timeout in seconds
            session: Optional requests session (reused across calls)
        """
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.llm_timeout_seconds
        self.session = session or requests.Session()

    def close(self):
        """Close the underlying HTTP session."""
        self.session.close()
        logger.debug("OpenAI client session closed")

    def chat_completion(
        self,
        model: str,
        system_message: str,
        user_message: str,
        schema: dict,
    ) -> str:
        """
        Send a system+user message pair and return the assistant content.

        Args:
            model: Model name (e.g. "gpt-4o-mini")
            system_message: Instructions for the model
            user_message: Content to process
            schema: JSON schema definition with name, schema and strict keys

        Returns:
            Content string of the first choice's message

        Raises:
            LLMClientError: On any transport, status or decoding failure
        """
        if not self.api_key:
            raise LLMClientError("OpenAI API key is not configured")

        schema_name = schema.get("name", "unknown")
        logger.info(
            f"request_start model={model} system_chars={len(system_message)} "
            f"user_chars={len(user_message)} schema={schema_name}"
        )

        body = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_message},
                {"role": "user", "content": user_message},
            ],
            "response_format": {"type": "json_schema", "json_schema": schema},
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        start = time.monotonic()
        try:
            response = self.session.post(
                f"{self.base_url}/chat/completions",
                json=body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            logger.error(f"request_failed error=\"timeout after {self.timeout}s\"")
            raise RequestTimeoutError() from e
        except requests.RequestException as e:
            logger.error(f"request_failed error=\"{e}\"")
            raise NetworkError(f"Network error: {e}") from e

        elapsed_ms = int((time.monotonic() - start) * 1000)

        if not 200 <= response.status_code < 300:
            logger.error(
                f"request_failed status={response.status_code} ms={elapsed_ms} "
                f"error=\"{response.text or 'no body'}\""
            )
            raise HTTPStatusError(response.status_code, response.text or None)

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"request_failed error=\"decoding failed: {e}\"")
            raise DecodingError(f"Failed to decode response: {e}") from e

        content = self._extract_content(payload)
        if content is None:
            logger.error("request_failed error=\"no content in response\"")
            raise InvalidResponseError()

        logger.info(
            f"response_received status={response.status_code} ms={elapsed_ms} "
            f"content_chars={len(content)}"
        )
        logger.debug(f"response_content: {content}")
        return content

    def _extract_content(self, payload) -> Optional[str]:
        """Pull choices[0].message.content out of the envelope."""
        if not isinstance(payload, dict):
            return None
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return None
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            return None
        content = message.get("content")
        return content if isinstance(content, str) else None
