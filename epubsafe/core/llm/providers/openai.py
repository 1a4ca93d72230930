"""
OpenAI-compatible provider implementation.

This module provides the OpenAICompatibleProvider class for interacting with
the chat-completions API of OpenAI and compatible endpoints (DeepSeek, Kimi,
llama.cpp, LM Studio, vLLM, etc.).
"""

from typing import Optional, Callable
import json
import httpx

from ..base import LLMProvider, LLMResponse
from epubsafe.config import REQUEST_TIMEOUT, LLM_TEMPERATURE, LLM_MAX_TOKENS
from epubsafe.core.epub.exceptions import OracleUnavailable


class OpenAICompatibleProvider(LLMProvider):
    """OpenAI-compatible chat-completions provider.

    One request per call: retries are the caller's decision.
    """

    def __init__(self, api_endpoint: str, model: str, api_key: Optional[str] = None,
                 temperature: float = LLM_TEMPERATURE, max_tokens: int = LLM_MAX_TOKENS,
                 log_callback: Optional[Callable] = None):
        super().__init__(model)
        self.api_endpoint = api_endpoint
        self.api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.log_callback = log_callback

    def _log(self, message_key: str, message: str, data: dict = None):
        if self.log_callback:
            if data is not None:
                self.log_callback(message_key, message, data)
            else:
                self.log_callback(message_key, message)

    async def generate(self, prompt: str, timeout: int = REQUEST_TIMEOUT,
                       system_prompt: Optional[str] = None) -> LLMResponse:
        """
        Generate text using an OpenAI compatible API.

        Args:
            prompt: The user prompt (segments to translate)
            timeout: Request timeout in seconds
            system_prompt: Optional system prompt (role/instructions)

        Returns:
            LLMResponse with content and token usage info

        Raises:
            OracleUnavailable: On timeout, transport error, HTTP error status or
                a body that is not chat-completions JSON
        """
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": False,
        }

        self._log("oracle_request", f"Sending request to {self.model}",
                  {"type": "oracle_request", "model": self.model, "prompt": prompt})

        client = await self._get_client()
        try:
            response = await client.post(
                self.api_endpoint,
                json=payload,
                headers=headers,
                timeout=timeout
            )
            response.raise_for_status()
            response_json = response.json()
        except httpx.TimeoutException as e:
            raise OracleUnavailable(f"Oracle request timed out: {e}", original_error=e)
        except httpx.HTTPStatusError as e:
            body = e.response.text[:500] if e.response is not None else ""
            raise OracleUnavailable(
                f"Oracle HTTP error {e.response.status_code}: {body}",
                status_code=e.response.status_code,
                original_error=e
            )
        except httpx.HTTPError as e:
            raise OracleUnavailable(f"Oracle transport error: {e}", original_error=e)
        except (json.JSONDecodeError, ValueError) as e:
            raise OracleUnavailable(f"Oracle returned invalid JSON: {e}", original_error=e)

        try:
            content = response_json["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise OracleUnavailable(
                f"Oracle response has no choices[0].message.content: {str(response_json)[:200]}",
                status_code=response.status_code,
                original_error=e
            )

        usage = response_json.get("usage") or {}
        result = LLMResponse(
            content=content,
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0)
        )

        self._log("oracle_response", f"Received {len(content)} chars from {self.model}",
                  {"type": "oracle_response", "model": self.model, "response": content})
        return result
