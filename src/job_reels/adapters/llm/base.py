"""Completion interface the manifest content generator talks to."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class LLMMessage:
    """One chat message."""

    role: str  # "system" or "user"
    content: str

    @classmethod
    def system(cls, content: str) -> "LLMMessage":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "LLMMessage":
        return cls(role="user", content=content)


@dataclass
class LLMResponse:
    """Text returned by a completion plus token accounting."""

    content: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    finish_reason: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    @property
    def truncated(self) -> bool:
        """True when the model stopped at the token limit (JSON is likely cut off)."""
        return self.finish_reason == "length"


class LLMProvider(ABC):
    """A chat model that can answer in JSON.

    Implementations:
    - OpenAIProvider: OpenAI chat completions over httpx
    - StubLLMProvider: Canned storyboard JSON for tests and local runs
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """``provider:model`` identifier recorded on generated manifests."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 2048,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Run one completion.

        Raises:
            ProviderError: If the provider rejects or fails the request
        """
        ...

    async def health_check(self) -> bool:
        return True
