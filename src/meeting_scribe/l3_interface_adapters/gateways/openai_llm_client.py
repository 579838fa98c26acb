"""Gateway: OpenAI-compatible LLM client, implements LLMClient port.

Works with any OpenAI-compatible API: OpenAI, Gemini, Groq, Together, vLLM, etc.
The SDK's own retries are disabled; RetryExecutor owns the retry loop.
"""

from __future__ import annotations

import openai

from meeting_scribe.l1_entities.chat_message import ChatMessage
from meeting_scribe.l1_entities.errors import TransportError, http_error, network_error, timeout_error
from meeting_scribe.l2_use_cases.ports.llm_client import ChatResponse
from meeting_scribe.l2_use_cases.utils.retry import parse_retry_after


def translate_openai_error(e: openai.OpenAIError) -> TransportError:
    if isinstance(e, openai.APITimeoutError):
        return timeout_error(f'LLM request timed out: {e}')
    if isinstance(e, openai.APIConnectionError):
        return network_error(f'Cannot reach LLM API: {e}')
    if isinstance(e, openai.APIStatusError):
        retry_after = parse_retry_after(e.response.headers.get('retry-after'))
        return http_error(e.status_code, f'LLM API error: {e.message}', retry_after=retry_after)
    return network_error(f'LLM API error: {e}')


class OpenAICompatLLMClient:
    """Wraps openai.AsyncOpenAI to implement the LLMClient protocol."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = 'https://api.openai.com/v1',
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def chat(self, model: str, messages: list[ChatMessage]) -> ChatResponse:
        client = openai.AsyncOpenAI(api_key=self._api_key, base_url=self._base_url, max_retries=0)
        try:
            resp = await client.chat.completions.create(
                model=model,
                messages=[{'role': m.role, 'content': m.content} for m in messages],  # ty: ignore[invalid-argument-type] -- dict satisfies ChatCompletionMessageParam at runtime
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except openai.OpenAIError as e:
            raise translate_openai_error(e) from e
        content = resp.choices[0].message.content or ''
        prompt_tokens = resp.usage.prompt_tokens if resp.usage else 0
        return ChatResponse(content=content, prompt_tokens=prompt_tokens)

    def check_connectivity(self) -> tuple[bool, str]:
        try:
            client = openai.OpenAI(api_key=self._api_key, base_url=self._base_url, max_retries=0)
            client.models.list()
            return True, ''
        except openai.AuthenticationError as e:
            return False, f'Authentication failed: {e}'
        except Exception as e:
            return False, f'Cannot connect to OpenAI-compatible API: {e}'
