"""Messages exchanged with the chat transport, and the one primitive the engine needs from it."""

from typing import Protocol

from pydantic import BaseModel, Field, field_validator

from chessbot.core.models import UserId


class InboundMessage(BaseModel):
    """A text message a user sent to the bot."""

    user_id: UserId
    display_name: str = ""  # informational only
    text: str = Field(max_length=4096)

    @field_validator("text")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()


class Notifier(Protocol):
    """Fire-and-forget delivery of a text to one user."""

    def notify(self, user_id: UserId, text: str) -> None:
        ...
