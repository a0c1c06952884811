"""The session object wiring configuration, cipher, clients and services together."""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING

import httpx

from cdnsync.clients.bunny import BunnyStorageClient
from cdnsync.clients.gateway import ObjectGateway
from cdnsync.clients.gitlab import GitLabClient
from cdnsync.services.crypto_service import EnvelopeCipher
from cdnsync.services.notification_service import DiscordNotifier
from cdnsync.services.reconcile_service import Reconciler
from cdnsync.services.run_log_service import RunLog
from cdnsync.services.transfer_service import TransferExecutor

if TYPE_CHECKING:
    from cdnsync.config import Settings


@dataclass
class SyncContext:
    """Everything a sync pass needs, built once at startup and passed explicitly."""

    settings: Settings
    http_client: httpx.AsyncClient
    cipher: EnvelopeCipher
    gateway: ObjectGateway
    executor: TransferExecutor
    reconciler: Reconciler
    notifier: DiscordNotifier
    run_log: RunLog

    @classmethod
    def create(cls, settings: Settings) -> SyncContext:
        """Validate settings and build the object graph.

        Raises:
            ConfigurationError: If required settings are missing or the key is invalid.
        """
        settings.validate_runtime()
        cipher = EnvelopeCipher(settings.key_bytes)
        http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        gateway = ObjectGateway(
            GitLabClient(
                http_client,
                settings.gitlab_instance_url,
                settings.gitlab_api_key,
                ref=settings.gitlab_ref,
            ),
            BunnyStorageClient(
                http_client,
                storage_url=settings.bunnycdn_storage_url,
                api_url=settings.bunnycdn_api_url,
                pull_zone=settings.bunnycdn_storage_pull_zone,
                api_key=settings.bunnycdn_api_key,
            ),
            manifest_file_name=settings.manifest_file_name,
            eligibility_file_name=settings.eligibility_file_name,
        )
        run_log = RunLog(settings.log_dir)
        notifier = DiscordNotifier(
            http_client,
            settings.discord_webhook_url,
            log_excerpt=partial(run_log.excerpt, settings.log_excerpt_limit),
        )
        executor = TransferExecutor(
            gateway,
            cipher,
            max_parallel=settings.max_parallel,
            control_file=settings.manifest_file_name,
        )
        reconciler = Reconciler(
            gateway,
            executor,
            staging_root=settings.temp_storage_path,
            manifest_file_name=settings.manifest_file_name,
            notifier=notifier,
            bootstrap_missing_mirror=settings.bootstrap_missing_mirror,
        )
        return cls(
            settings=settings,
            http_client=http_client,
            cipher=cipher,
            gateway=gateway,
            executor=executor,
            reconciler=reconciler,
            notifier=notifier,
            run_log=run_log,
        )

    async def aclose(self) -> None:
        """Close the HTTP client and the current log file."""
        await self.http_client.aclose()
        self.run_log.close()

    async def __aenter__(self) -> SyncContext:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
