"""Gateway: Ollama LLM client, implements LLMClient port."""

from __future__ import annotations

import httpx
import ollama as ollama_sync

from meeting_scribe.l1_entities.chat_message import ChatMessage
from meeting_scribe.l1_entities.errors import http_error, network_error, timeout_error
from meeting_scribe.l2_use_cases.ports.llm_client import ChatResponse


class OllamaLLMClient:
    """Wraps ollama.AsyncClient to implement the LLMClient protocol."""

    def __init__(self, host: str = 'http://localhost:11434', temperature: float = 0.3, max_tokens: int = 2000) -> None:
        self._host = host
        self._options = {'temperature': temperature, 'num_predict': max_tokens}

    async def chat(self, model: str, messages: list[ChatMessage]) -> ChatResponse:
        client = ollama_sync.AsyncClient(host=self._host)
        try:
            resp = await client.chat(model=model, messages=[m.model_dump() for m in messages], options=self._options)
        except ollama_sync.ResponseError as e:
            raise http_error(e.status_code, f'Ollama error: {e.error}') from e
        except httpx.TimeoutException as e:
            raise timeout_error(f'Ollama request timed out: {e}') from e
        except (httpx.TransportError, ConnectionError) as e:
            raise network_error(f'Cannot connect to Ollama: {e}') from e
        return ChatResponse(
            content=resp.message.content or '',
            prompt_tokens=getattr(resp, 'prompt_eval_count', 0) or 0,
        )

    def check_connectivity(self) -> tuple[bool, str]:
        try:
            client = ollama_sync.Client(host=self._host)
            client.list()
            return True, ''
        except Exception as e:
            return False, f'Cannot connect to Ollama: {e}'
