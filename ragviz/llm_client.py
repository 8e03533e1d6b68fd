"""Async client for the Ollama HTTP API (embeddings, token counts, chat)."""
import httpx
from typing import Any, List, Dict, Optional
import structlog

from ragviz import config

logger = structlog.get_logger()


class OllamaClient:
    """Thin async wrapper over the Ollama endpoints the visualizer uses.

    Each call opens its own httpx.AsyncClient. Response bodies are returned
    as decoded JSON; callers validate their shape.
    """

    def __init__(
        self,
        base_url: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Backend URL (default config.OLLAMA_BASE_URL)
            timeout: Seconds per request (default config.REQUEST_TIMEOUT)
            transport: httpx transport override, e.g. httpx.MockTransport
        """
        self.base_url = (base_url or config.OLLAMA_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else config.REQUEST_TIMEOUT
        self.transport = transport

    def _client(self, timeout: float = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout if timeout is not None else self.timeout,
            transport=self.transport,
        )

    async def _post(self, path: str, payload: Dict[str, Any]) -> Any:
        """POST a JSON payload and decode the JSON reply.

        Raises:
            httpx.HTTPError: On transport errors or non-2xx status
            ValueError: If the reply is not JSON
        """
        try:
            async with self._client() as client:
                response = await client.post(f"{self.base_url}{path}", json=payload)
                response.raise_for_status()
                return response.json()
        except httpx.ConnectError as e:
            logger.error("ollama_connection_error", path=path, error=str(e), base_url=self.base_url)
            raise
        except httpx.HTTPError as e:
            logger.error("ollama_http_error", path=path, error=str(e), status_code=_status_code(e))
            raise

    async def chat(
        self,
        messages: List[Dict[str, str]],
        model: str = None,
        temperature: Optional[float] = None,
    ) -> Dict:
        """Non-streaming chat completion; the reply text is in data['message']['content']."""
        model = model or config.CHAT_MODEL

        payload = {"model": model, "messages": messages, "stream": False}
        if temperature is not None:
            payload["options"] = {"temperature": temperature}

        logger.info("ollama_chat_request", model=model, message_count=len(messages))
        return await self._post("/api/chat", payload)

    async def embeddings(self, prompt: str, model: str = None) -> Dict:
        """Embed one text; the vector is in data['embedding'].

        The body is returned undecoded beyond JSON so the embedding provider
        can decide what counts as a usable vector.
        """
        model = model or config.EMBEDDING_MODEL

        logger.debug("ollama_embedding_request", model=model, prompt_length=len(prompt))
        return await self._post("/api/embeddings", {"model": model, "prompt": prompt})

    async def count_tokens(self, text: str, model: str = None) -> Optional[int]:
        """Prompt token count reported by /api/embed, or None if absent or malformed."""
        data = await self._post(
            "/api/embed", {"model": model or config.CHAT_MODEL, "input": text}
        )

        count = data.get("prompt_eval_count") if isinstance(data, dict) else None
        if isinstance(count, bool) or not isinstance(count, int):
            return None
        return count

    async def list_models(self) -> List[str]:
        """Names of the models installed on the backend (short timeout)."""
        async with self._client(timeout=5.0) as client:
            response = await client.get(f"{self.base_url}/api/tags")
            response.raise_for_status()
            return [m["name"] for m in response.json().get("models", [])]


def _status_code(error: httpx.HTTPError) -> Optional[int]:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return None


def build_ollama_client() -> Optional[OllamaClient]:
    """Client for the configured backend, or None when OLLAMA_BASE_URL is unset."""
    if not config.OLLAMA_BASE_URL:
        logger.warning("ollama_not_configured", hint="set OLLAMA_BASE_URL to use a live backend")
        return None
    return OllamaClient()
