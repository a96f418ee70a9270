"""Ships a file tree to the hosting provider as one deployment.

Each file is uploaded under its SHA-1 digest (the provider's dedup key), then
a single deployment is created from the ``{file, sha, size}`` manifest. Status
polling is left to callers through ``get_deployment_status``.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from sitecraft.errors import DeploymentError
from sitecraft.providers.base import (
    DeploymentResult,
    DeploymentStatus,
    HostingProvider,
    HostingProviderFactory,
    ManifestEntry,
    ProviderRequestError,
)
from sitecraft.tools.file_tree import VirtualFileTree

logger = structlog.get_logger(__name__)


@dataclass(slots=True, frozen=True)
class DeployTarget:
    provider_token: str
    project_name: str
    team_id: str | None = None


@dataclass(slots=True, frozen=True)
class PreparedFile:
    path: str
    data: bytes
    sha: str

    @property
    def size(self) -> int:
        return len(self.data)


def prepare_files(tree: VirtualFileTree) -> list[PreparedFile]:
    prepared = []
    for path, file in tree.entries():
        data = file.content.encode("utf-8")
        prepared.append(PreparedFile(path=path, data=data, sha=hashlib.sha1(data).hexdigest()))
    return prepared


class DeploymentOrchestrator:
    def __init__(
        self,
        provider_factory: HostingProviderFactory,
        *,
        upload_max_attempts: int = 3,
        upload_retry_wait_seconds: float = 1.0,
        framework: str = "nextjs",
    ):
        self.provider_factory = provider_factory
        self.upload_max_attempts = upload_max_attempts
        self.upload_retry_wait_seconds = upload_retry_wait_seconds
        self.framework = framework

    def provider_for(self, target: DeployTarget) -> HostingProvider:
        return self.provider_factory(target.provider_token, target.team_id)

    async def deploy(self, tree: VirtualFileTree, target: DeployTarget) -> DeploymentResult:
        """Upload every file of *tree*, then create one deployment.

        Not idempotent: calling it again uploads (deduplicated by digest on
        the provider side) and creates a new deployment.
        """
        if not tree.size:
            raise DeploymentError("Nothing to deploy: the file tree is empty")

        provider = self.provider_for(target)
        files = prepare_files(tree)
        log = logger.bind(project_name=target.project_name, file_count=len(files))
        log.info("deployment_upload_started")

        for prepared in files:
            await self._upload_with_retry(provider, prepared)

        manifest = [ManifestEntry(file=f.path, sha=f.sha, size=f.size) for f in files]
        try:
            result = await provider.create_deployment(
                target.project_name,
                manifest,
                framework=self.framework,
            )
        except ProviderRequestError as exc:
            log.error("deployment_create_failed", error=str(exc), status_code=exc.status_code)
            raise DeploymentError(
                f"Deployment failed: {exc}",
                provider_message=str(exc),
                details={"status_code": exc.status_code, "code": exc.code},
            ) from exc

        log.info(
            "deployment_created",
            deployment_id=result.deployment_id,
            url=result.url,
            ready_state=result.ready_state.value,
        )
        return result

    async def _upload_with_retry(self, provider: HostingProvider, prepared: PreparedFile) -> None:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(ProviderRequestError),
            stop=stop_after_attempt(self.upload_max_attempts),
            wait=wait_exponential(multiplier=self.upload_retry_wait_seconds, max=30),
            reraise=True,
            before_sleep=lambda rs: logger.warning(
                "file_upload_retrying",
                path=prepared.path,
                attempt=rs.attempt_number,
                sleep_seconds=rs.next_action.sleep,
            ),
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await provider.upload_file(prepared.data, prepared.sha)
        except ProviderRequestError as exc:
            logger.error("file_upload_failed", path=prepared.path, error=str(exc))
            raise DeploymentError(
                f"Failed to upload {prepared.path}: {exc}",
                provider_message=str(exc),
                details={"path": prepared.path, "status_code": exc.status_code},
            ) from exc

    async def get_deployment_status(
        self, deployment_id: str, target: DeployTarget
    ) -> DeploymentStatus:
        provider = self.provider_for(target)
        try:
            return await provider.get_deployment(deployment_id)
        except ProviderRequestError as exc:
            raise DeploymentError(
                f"Failed to get deployment status: {exc}",
                provider_message=str(exc),
                details={"deployment_id": deployment_id, "status_code": exc.status_code},
            ) from exc
