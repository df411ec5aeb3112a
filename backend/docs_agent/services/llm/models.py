"""
Pydantic models shared by the completion gateway and its providers.
"""

from typing import Literal

from pydantic import BaseModel


Role = Literal["user", "assistant", "system"]


class Turn(BaseModel):
    """One conversation turn. Ordering of turns is chronological, oldest first."""

    role: Role
    content: str

    model_config = {"frozen": True}


class CompletionResult(BaseModel):
    """Outcome of a one-shot completion, including who actually served it."""

    provider: str
    model: str
    content: str
    fell_back: bool = False
    requested_provider: str | None = None
