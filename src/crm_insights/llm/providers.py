"""Text generation and function-calling providers. Supports OpenAI, Google Gemini and Ollama (local)."""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

import httpx

from crm_insights.config import Settings
from crm_insights.errors import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_MODELS = {"openai": "gpt-4o", "gemini": "gemini-2.5-pro", "ollama": "llama3.2"}


def generate_text(provider: str, prompt: str, settings: Optional[Settings] = None) -> str:
    """
    Generate text for a prompt with the named provider ("openai", "gemini" or "ollama").
    Any failure, including an empty response, raises ProviderError. Never retried here.
    """
    settings = settings or Settings.from_env()
    provider = (provider or settings.llm_provider).lower()
    if provider == "openai":
        text = _generate_openai(prompt, settings)
    elif provider == "gemini":
        text = _generate_gemini(prompt, settings)
    elif provider == "ollama":
        text = _generate_ollama(prompt, settings)
    else:
        raise ProviderError(provider, f"Unknown provider. Available: {sorted(DEFAULT_MODELS)}")
    if not text or not text.strip():
        raise ProviderError(provider, "empty response")
    return text


def _model_name(provider: str, settings: Settings) -> str:
    return settings.llm_model or DEFAULT_MODELS[provider]


def _openai_client(settings: Settings):
    if not settings.openai_api_key:
        raise ProviderError("openai", "OPENAI_API_KEY is not set")
    try:
        from openai import OpenAI
    except ImportError as e:
        raise ProviderError("openai", "openai package is not installed", e) from e
    return OpenAI(api_key=settings.openai_api_key)


def _generate_openai(prompt: str, settings: Settings) -> str:
    client = _openai_client(settings)
    logger.info("Generating text with OpenAI model %s", _model_name("openai", settings))
    try:
        response = client.chat.completions.create(
            model=_model_name("openai", settings),
            messages=[{"role": "user", "content": prompt}],
        )
    except Exception as e:
        logger.warning("OpenAI generation failed: %s", e)
        raise ProviderError("openai", str(e), e) from e
    return response.choices[0].message.content or ""


def _gemini_model(settings: Settings):
    if not settings.gemini_api_key:
        raise ProviderError("gemini", "GEMINI_API_KEY is not set")
    try:
        import google.generativeai as genai
    except ImportError as e:
        raise ProviderError("gemini", "google-generativeai package is not installed", e) from e
    genai.configure(api_key=settings.gemini_api_key)
    return genai.GenerativeModel(_model_name("gemini", settings))


def _generate_gemini(prompt: str, settings: Settings) -> str:
    model = _gemini_model(settings)
    logger.info("Generating text with Gemini model %s", _model_name("gemini", settings))
    try:
        response = model.generate_content(prompt)
        # .text raises ValueError when the candidate was blocked
        return response.text or ""
    except Exception as e:
        logger.warning("Gemini generation failed: %s", e)
        raise ProviderError("gemini", str(e), e) from e


def _generate_ollama(prompt: str, settings: Settings) -> str:
    model = _model_name("ollama", settings)
    logger.info("Generating text with Ollama model %s", model)
    try:
        resp = httpx.post(
            settings.ollama_url,
            json={"model": model, "prompt": prompt, "stream": False},
            timeout=120,
        )
        resp.raise_for_status()
        return resp.json().get("response", "")
    except httpx.HTTPStatusError as e:
        raise ProviderError("ollama", f"HTTP {e.response.status_code}", e) from e
    except (httpx.RequestError, ValueError) as e:
        logger.warning("Ollama generation failed: %s", e)
        raise ProviderError("ollama", str(e), e) from e


@dataclass
class ToolCall:
    """One function invocation requested by the model; arguments are raw JSON text."""

    id: str
    name: str
    arguments: str


@dataclass
class ChatReply:
    content: Optional[str]
    tool_calls: list[ToolCall] = field(default_factory=list)

    def to_message(self) -> dict:
        """Assistant message echoing the tool calls, as the chat API expects."""
        message: dict = {"role": "assistant", "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": c.id,
                    "type": "function",
                    "function": {"name": c.name, "arguments": c.arguments},
                }
                for c in self.tool_calls
            ]
        return message


class ChatModel(ABC):
    """Function-calling oracle: given messages and tools, reply with text and/or tool calls."""

    provider_name: str = ""

    @abstractmethod
    def complete(self, messages: list[dict], tools: Optional[list[dict]] = None) -> ChatReply:
        pass


class OpenAIChatModel(ChatModel):
    """Chat completions with tool calling via the OpenAI API."""

    provider_name = "openai"

    def __init__(self, settings: Optional[Settings] = None, client=None):
        self.settings = settings or Settings.from_env()
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = _openai_client(self.settings)
        return self._client

    def complete(self, messages: list[dict], tools: Optional[list[dict]] = None) -> ChatReply:
        kwargs: dict = {"model": _model_name("openai", self.settings), "messages": messages}
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
        try:
            response = self.client.chat.completions.create(**kwargs)
        except ProviderError:
            raise
        except Exception as e:
            logger.warning("OpenAI chat completion failed: %s", e)
            raise ProviderError("openai", str(e), e) from e
        message = response.choices[0].message
        calls = [
            ToolCall(id=c.id, name=c.function.name, arguments=c.function.arguments or "")
            for c in (message.tool_calls or [])
        ]
        return ChatReply(content=message.content, tool_calls=calls)


def dump_tool_result(payload: dict) -> str:
    """JSON-encode a tool result for the conversation."""
    return json.dumps(payload, ensure_ascii=False, default=str)
