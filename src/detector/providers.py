"""
Text-generation providers for root-cause narratives.

Providers are tried in order by the dispatcher. Each one is an
OpenAI-compatible chat model (Groq exposes the same API under its own base
URL), bounded by the HTTP client timeout.
"""

from abc import ABC, abstractmethod

import structlog
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import SecretStr

from src.core.config import PipelineConfig

logger = structlog.get_logger(__name__)

GROQ_SYSTEM_PROMPT = (
    "You are a senior DevOps engineer analyzing system anomalies. "
    "Provide clear, actionable root cause analysis."
)
OPENAI_SYSTEM_PROMPT = (
    "You are a senior DevOps engineer analyzing system anomalies. "
    "Provide clear, actionable root cause analysis with complete postmortem."
)


class TextGenerationProvider(ABC):
    """Capability: turn a prompt into a narrative"""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def summarize(self, prompt: str) -> str:
        """Return generated text; raise on any failure"""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"


class ChatModelProvider(TextGenerationProvider):
    """OpenAI-compatible chat completion provider"""

    def __init__(
        self,
        name: str,
        api_key: str,
        model: str,
        system_prompt: str,
        base_url: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        timeout: float = 60.0,
    ):
        self._name = name
        self.model = model
        self.system_prompt = system_prompt
        self.llm = ChatOpenAI(
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            api_key=SecretStr(api_key),
            base_url=base_url or None,
            timeout=timeout,
            max_retries=0,
        )

    @property
    def name(self) -> str:
        return self._name

    def summarize(self, prompt: str) -> str:
        response = self.llm.invoke(
            [SystemMessage(content=self.system_prompt), HumanMessage(content=prompt)]
        )
        text = response.content if isinstance(response.content, str) else str(response.content)
        if not text.strip():
            raise ValueError(f"{self.name} returned an empty analysis")
        return text


def build_providers(config: PipelineConfig) -> list[TextGenerationProvider]:
    """Configured providers in fallback order: Groq first, then OpenAI"""
    providers: list[TextGenerationProvider] = []

    if config.groq_api_key:
        providers.append(
            ChatModelProvider(
                name="groq",
                api_key=config.groq_api_key,
                model=config.groq_model,
                system_prompt=GROQ_SYSTEM_PROMPT,
                base_url=config.groq_base_url,
                temperature=config.llm_temperature,
                max_tokens=config.llm_max_tokens,
                timeout=config.llm_timeout_seconds,
            )
        )

    if config.openai_api_key:
        providers.append(
            ChatModelProvider(
                name="openai",
                api_key=config.openai_api_key,
                model=config.openai_model,
                system_prompt=OPENAI_SYSTEM_PROMPT,
                base_url=config.openai_base_url,
                temperature=config.llm_temperature,
                max_tokens=config.llm_max_tokens,
                timeout=config.llm_timeout_seconds,
            )
        )

    if not providers:
        logger.warning("No text-generation provider configured (GROQ_API_KEY or OPENAI_API_KEY)")
    else:
        logger.info("Text-generation providers configured", providers=[p.name for p in providers])

    return providers
