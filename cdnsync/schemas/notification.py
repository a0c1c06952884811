"""Discord webhook payload schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class DiscordEmbedField(BaseModel):
    name: str
    value: str
    inline: bool = False


class DiscordEmbed(BaseModel):
    title: str
    description: str
    color: int
    fields: list[DiscordEmbedField] = Field(default_factory=list)


class DiscordWebhookBody(BaseModel):
    content: str = ""
    embeds: list[DiscordEmbed] = Field(default_factory=list)
