"""LLM HTTP client for structuring statement text into transaction JSON"""

import httpx
from typing import Protocol
from logbook_ledger.domain.prompts import StatementPrompt
from logbook_ledger.domain.exceptions import LLMUnavailable
from logbook_ledger.config import settings
from logbook_ledger.infrastructure.observability.metrics import llm_latency_histogram, llm_failure_counter


class LLMClient(Protocol):
    """Anything that turns a prompt into a single text completion"""

    async def complete(self, prompt: StatementPrompt) -> str:
        ...


class OpenAIChatClient:
    """Client for an OpenAI-compatible chat completions API"""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.llm_api_base).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.llm_api_key
        self.model = model or settings.llm_model
        self.temperature = temperature if temperature is not None else settings.llm_temperature
        self.max_output_tokens = max_output_tokens or settings.llm_max_output_tokens
        self.timeout = timeout or settings.llm_timeout_seconds
        self.transport = transport

    async def complete(self, prompt: StatementPrompt) -> str:
        """
        Send system + user turns and return the completion text.

        Raises:
            LLMUnavailable: On timeout, transport or HTTP errors, or an empty/invalid completion
        """
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": prompt.system},
                {"role": "user", "content": prompt.user},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_output_tokens,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                with llm_latency_histogram.time():
                    response = await client.post(
                        f"{self.base_url}/chat/completions",
                        json=payload,
                        headers=headers,
                    )
                response.raise_for_status()
                data = response.json()
                content = data["choices"][0]["message"]["content"]

            except httpx.TimeoutException as e:
                llm_failure_counter.labels(kind="timeout").inc()
                raise LLMUnavailable(f"LLM request timed out after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                llm_failure_counter.labels(kind="http_status").inc()
                raise LLMUnavailable(f"LLM provider error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                llm_failure_counter.labels(kind="transport").inc()
                raise LLMUnavailable(f"LLM provider unreachable: {e}") from e
            except (KeyError, IndexError, TypeError, ValueError) as e:
                llm_failure_counter.labels(kind="invalid_envelope").inc()
                raise LLMUnavailable(f"Invalid completion envelope from LLM provider: {e}") from e

        if not content or not isinstance(content, str):
            llm_failure_counter.labels(kind="empty_completion").inc()
            raise LLMUnavailable("No completion text returned by LLM provider")
        return content
