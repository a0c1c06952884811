"""Discord webhook notifications for entity outcomes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from cdnsync.schemas.notification import DiscordEmbed, DiscordEmbedField, DiscordWebhookBody
from cdnsync.services.reconcile_service import PassStatus

if TYPE_CHECKING:
    from collections.abc import Callable

    from cdnsync.services.reconcile_service import EntityOutcome

logger = logging.getLogger(__name__)

COLOR_SUCCESS = 3447003
COLOR_FAILURE = 16711680
COLOR_NO_CHANGES = 9807270
COLOR_SKIPPED = 16763904

_CODE_FENCE = "```"

_TEMPLATES: dict[PassStatus, tuple[str, str, int]] = {
    PassStatus.SUCCESS: (
        "Synchronization for {name} Completed",
        "The operation completed successfully",
        COLOR_SUCCESS,
    ),
    PassStatus.FAILURE: (
        "Synchronization for {name} Failed",
        "Operation aborted due to an error, this requires immediate attention!",
        COLOR_FAILURE,
    ),
    PassStatus.NO_CHANGES: (
        "Synchronization for {name} Unchanged",
        "No files to be uploaded or deleted",
        COLOR_NO_CHANGES,
    ),
    PassStatus.SKIPPED: (
        "Synchronization for {name} Skipped",
        "The repository could not be compared",
        COLOR_SKIPPED,
    ),
}


def build_embed(outcome: EntityOutcome) -> DiscordEmbed:
    """Render an entity outcome as a Discord embed (without the log field)."""
    title, description, color = _TEMPLATES[outcome.status]
    lines = [description]
    if outcome.uploaded or outcome.deleted or outcome.failed:
        lines.append(
            f"Uploaded: {outcome.uploaded}, deleted: {outcome.deleted}, failed: {outcome.failed}"
        )
    if outcome.detail:
        lines.append(outcome.detail)
    return DiscordEmbed(
        title=title.format(name=outcome.entity.name),
        description="\n".join(lines),
        color=color,
    )


class DiscordNotifier:
    """Posts outcome embeds, with the current pass's log excerpt attached."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        webhook_url: str,
        log_excerpt: Callable[[], str] | None = None,
    ) -> None:
        self._http = http_client
        self.webhook_url = webhook_url
        self._log_excerpt = log_excerpt

    async def notify(self, outcome: EntityOutcome) -> bool:
        return await self.send(build_embed(outcome))

    async def notify_run_failure(self, detail: str) -> bool:
        embed = DiscordEmbed(
            title="Synchronization Failed",
            description=f"The synchronization pass could not start: {detail}",
            color=COLOR_FAILURE,
        )
        return await self.send(embed)

    async def send(self, embed: DiscordEmbed) -> bool:
        """Post one embed. Delivery problems are logged and reported as False."""
        if not self.webhook_url:
            logger.debug("No webhook configured, not sending %r", embed.title)
            return False

        excerpt = self._log_excerpt() if self._log_excerpt is not None else ""
        if excerpt:
            embed = embed.model_copy(
                update={
                    "fields": [
                        *embed.fields,
                        DiscordEmbedField(
                            name="Log file", value=f"{_CODE_FENCE}{excerpt}{_CODE_FENCE}"
                        ),
                    ]
                }
            )

        body = DiscordWebhookBody(embeds=[embed])
        try:
            resp = await self._http.post(self.webhook_url, json=body.model_dump())
        except httpx.HTTPError:
            logger.exception("Failed to post webhook")
            return False
        if resp.status_code >= 400:
            logger.warning("Discord rejected webhook with status %s", resp.status_code)
            return False
        logger.debug("Sent embed to Discord: %s", embed.title)
        return True
