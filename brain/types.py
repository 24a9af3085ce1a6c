"""
brain/types.py — LLM Transport Data Models

Provider-neutral request/response shapes. Each client maps its native
API onto these; the reasoning layer only ever sees these.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Provider(str, Enum):
    OPENAI = "openai"
    OLLAMA = "ollama"


class FinishReason(str, Enum):
    STOP = "stop"
    LENGTH = "length"       # hit max_tokens; the reply may lack </reply>
    ERROR = "error"


class Message(BaseModel):
    role: Role
    content: str = ""

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=Role.ASSISTANT, content=content)


class LLMConfig(BaseModel):
    """Per-request settings. timeout_seconds bounds a single call."""
    model: str
    temperature: float = 0.2
    max_tokens: int = 4096
    timeout_seconds: float = 60.0


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class LLMResponse(BaseModel):
    content: Optional[str] = None
    finish_reason: FinishReason = FinishReason.STOP
    usage: TokenUsage = Field(default_factory=TokenUsage)
    model: str = ""
    provider: Provider = Provider.OPENAI

    @property
    def text(self) -> str:
        return self.content or ""

    @property
    def truncated(self) -> bool:
        return self.finish_reason == FinishReason.LENGTH
