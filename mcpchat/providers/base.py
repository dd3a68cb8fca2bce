"""
mcpchat Provider Base - Chat-completion providers with tool calling.

This module defines the interface the chat session uses to talk to a
model, the OpenAI-style implementations, and a factory for creating
provider instances from a model name.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

from mcpchat.core.messages import CompletionChoice, ConversationMessage
from mcpchat.toolserver.schema import ModelToolSpec
from mcpchat.validation.config import Config, ConfigError

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Raised when a completion request fails."""

    pass


class Provider(ABC):
    """
    Abstract base class for chat-completion providers.

    All provider implementations must inherit from this class and
    implement ``complete``.

    Example:
        >>> provider = ProviderFactory.create("openai/gpt-4o", Config.load())
        >>> choice = provider.complete([UserMessage(content="hello")])
        >>> choice.content
        'Hi! How can I help?'
    """

    def __init__(self, model: str, config: Config):
        """
        Initialize the provider.

        Args:
            model: The model identifier, without provider prefix.
            config: mcpchat configuration.
        """
        self.model = model
        self.config = config

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    def complete(
        self,
        messages: Sequence[ConversationMessage],
        tools: Optional[Sequence[ModelToolSpec]] = None,
    ) -> CompletionChoice:
        """
        Request a completion for the conversation.

        Args:
            messages: Conversation so far, oldest first.
            tools: Tool specs the model may call. ``None`` or empty means
                the request carries no ``tools`` field at all.

        Returns:
            The first choice of the response.
        """
        pass

    def get_api_key(self) -> Optional[str]:
        """Get the API key for this provider."""
        return self.config.get_api_key(self.provider_name)

    def require_api_key(self) -> str:
        """Get the API key or raise ConfigError if it is not configured."""
        return self.config.require_api_key(self.provider_name)

    def build_request(
        self,
        messages: Sequence[ConversationMessage],
        tools: Optional[Sequence[ModelToolSpec]] = None,
    ) -> Dict[str, Any]:
        """Build the OpenAI chat-completions request body."""
        agent = self.config.merged.agent
        request: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": agent.max_tokens,
            "messages": [message.to_openai() for message in messages],
        }
        if tools:
            request["tools"] = [tool.to_openai() for tool in tools]
        if agent.temperature is not None:
            request["temperature"] = agent.temperature
        return request


class OpenAIProvider(Provider):
    """OpenAI API provider implementation."""

    def __init__(self, model: str, config: Config, client: Any = None):
        super().__init__(model, config)
        self._client = client

    @property
    def provider_name(self) -> str:
        return "openai"

    def _get_client(self) -> Any:
        if self._client is None:
            import openai

            provider_config = self.config.get_provider_config("openai")
            self._client = openai.OpenAI(
                api_key=self.require_api_key(),
                base_url=provider_config.api_base if provider_config else None,
                timeout=self.config.merged.agent.timeout,
            )
        return self._client

    def complete(
        self,
        messages: Sequence[ConversationMessage],
        tools: Optional[Sequence[ModelToolSpec]] = None,
    ) -> CompletionChoice:
        """Generate a completion using the OpenAI SDK."""
        import openai

        client = self._get_client()
        request = self.build_request(messages, tools)
        logger.debug("openai request: %d messages, %d tools", len(messages), len(tools or []))

        try:
            response = client.chat.completions.create(**request)
        except openai.OpenAIError as exc:
            raise ProviderError(f"OpenAI request failed: {exc}") from exc

        if not response.choices:
            raise ProviderError("OpenAI returned no choices")

        choice = response.choices[0]
        return CompletionChoice.from_openai(
            choice.message.model_dump(exclude_none=True),
            finish_reason=choice.finish_reason,
        )


class OpenAICompatibleProvider(Provider):
    """
    Base for providers that expose an OpenAI-compatible chat completions API.

    Subclasses only need to set _base_url and provider_name.
    Uses httpx so no extra packages are required.
    """

    _base_url: str = ""

    @property
    def provider_name(self) -> str:
        raise NotImplementedError

    def _get_base_url(self) -> str:
        provider_config = self.config.get_provider_config(self.provider_name)
        if provider_config and provider_config.api_base:
            return provider_config.api_base.rstrip("/")
        return self._base_url

    def complete(
        self,
        messages: Sequence[ConversationMessage],
        tools: Optional[Sequence[ModelToolSpec]] = None,
    ) -> CompletionChoice:
        import httpx

        api_key = self.require_api_key()
        request = self.build_request(messages, tools)
        logger.debug(
            "%s request: %d messages, %d tools", self.provider_name, len(messages), len(tools or [])
        )

        try:
            response = httpx.post(
                f"{self._get_base_url()}/chat/completions",
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                },
                json=request,
                timeout=self.config.merged.agent.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise ProviderError(f"{self.provider_name} request failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderError(f"{self.provider_name} returned invalid JSON: {exc}") from exc

        choices = data.get("choices") or []
        if not choices:
            raise ProviderError(f"{self.provider_name} returned no choices")

        choice = choices[0]
        return CompletionChoice.from_openai(
            choice.get("message") or {},
            finish_reason=choice.get("finish_reason"),
        )


class OpenRouterProvider(OpenAICompatibleProvider):
    """OpenRouter - unified API for 100+ open and commercial models."""

    _base_url = "https://openrouter.ai/api/v1"

    @property
    def provider_name(self) -> str:
        return "openrouter"


class TogetherProvider(OpenAICompatibleProvider):
    """Together AI - fast inference for open-source models."""

    _base_url = "https://api.together.xyz/v1"

    @property
    def provider_name(self) -> str:
        return "together"


class GroqProvider(OpenAICompatibleProvider):
    """Groq - ultra-fast inference for open models."""

    _base_url = "https://api.groq.com/openai/v1"

    @property
    def provider_name(self) -> str:
        return "groq"


class ProviderFactory:
    """Factory for creating provider instances."""

    _providers: Dict[str, Type[Provider]] = {
        "openai": OpenAIProvider,
        "openrouter": OpenRouterProvider,
        "together": TogetherProvider,
        "groq": GroqProvider,
    }

    @classmethod
    def register(cls, name: str, provider_class: Type[Provider]) -> None:
        """Register a new provider."""
        cls._providers[name] = provider_class

    @classmethod
    def split_model(cls, model: str) -> Tuple[str, str]:
        """Split ``provider/model`` or infer the provider of a bare model name."""
        if "/" in model:
            provider_name, model_name = model.split("/", 1)
            if provider_name in cls._providers:
                return provider_name, model_name
        return cls._infer_provider(model), model

    @classmethod
    def create(cls, model: str, config: Config) -> Provider:
        """
        Create a provider instance for the given model.

        Args:
            model: Model identifier (e.g., "openai/gpt-4o" or "gpt-4o").
            config: mcpchat configuration.

        Returns:
            Provider instance.

        Raises:
            ConfigError: If the provider is not recognized.
        """
        provider_name, model_name = cls.split_model(model)

        if provider_name not in cls._providers:
            raise ConfigError(f"Unknown provider: {provider_name}")

        provider_config = config.get_provider_config(provider_name)
        if provider_config is not None and not provider_config.enabled:
            raise ConfigError(f"Provider {provider_name} is disabled in configuration")

        provider_class = cls._providers[provider_name]
        return provider_class(model=model_name, config=config)

    @classmethod
    def _infer_provider(cls, model: str) -> str:
        """Infer the provider from the model name."""
        model_lower = model.lower()

        if model_lower.startswith(("gpt", "o1", "o3", "o4", "chatgpt")):
            return "openai"
        elif model_lower.startswith("llama") or model_lower.startswith("deepseek"):
            return "groq"
        elif model_lower.startswith("mixtral") or model_lower.startswith("qwen"):
            return "together"

        # Default to openrouter (broadest model catalog)
        return "openrouter"

    @classmethod
    def available_providers(cls) -> List[str]:
        """Get list of available provider names."""
        return list(cls._providers.keys())
