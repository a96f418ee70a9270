from __future__ import annotations

import structlog

from sitecraft.errors import NotFoundError
from sitecraft.models.project import Project, ProjectStatus
from sitecraft.providers.base import DeploymentResult, DeploymentStatus
from sitecraft.repositories.project_repository import ProjectRepository
from sitecraft.services.deployment_service import DeploymentOrchestrator, DeployTarget
from sitecraft.services.generation_ledger import GenerationLedger
from sitecraft.tools.archive import build_project_archive
from sitecraft.tools.file_tree import VirtualFileTree

logger = structlog.get_logger(__name__)


class ExportService:
    """Hands the latest completed version to the user, as a zip or a deployment."""

    def __init__(
        self,
        projects: ProjectRepository,
        ledger: GenerationLedger,
        orchestrator: DeploymentOrchestrator,
    ):
        self.projects = projects
        self.ledger = ledger
        self.orchestrator = orchestrator

    async def _latest_tree(self, project_id: str, user_id: str) -> tuple[Project, VirtualFileTree]:
        project = await self.projects.get_project(project_id, user_id=user_id)
        version = await self.ledger.latest_complete(project_id)
        if version is None:
            raise NotFoundError("Completed generation")
        tree = await self.ledger.load_tree(version.id)
        if not tree.size:
            raise NotFoundError("Generated files")
        return project, tree

    async def build_archive(self, project_id: str, user_id: str) -> tuple[str, bytes]:
        """Return ``(filename, zip bytes)`` for the latest completed version."""
        project, tree = await self._latest_tree(project_id, user_id)
        data = build_project_archive(tree, project.generation_config)
        logger.info("project_archive_built", project_id=project_id, size=len(data))
        return f"{project.slug}.zip", data

    async def deploy_to_account(
        self,
        project_id: str,
        user_id: str,
        *,
        provider_token: str,
        project_name: str,
        team_id: str | None = None,
    ) -> DeploymentResult:
        """Deploy with the caller's own hosting credentials.

        Generated or deployed projects become ``deployed``; a published project
        keeps its public URL and only records the new deployment URL.
        """
        project, tree = await self._latest_tree(project_id, user_id)
        target = DeployTarget(provider_token=provider_token, project_name=project_name, team_id=team_id)
        deployment = await self.orchestrator.deploy(tree, target)

        if project.status is ProjectStatus.PUBLISHED:
            await self.projects.set_deployment_url(project_id, deployment.url)
        else:
            await self.projects.record_deployment(
                project_id,
                status=ProjectStatus.DEPLOYED,
                public_url=deployment.url,
                deployment_url=deployment.url,
            )
        return deployment

    async def get_deployment_status(
        self,
        deployment_id: str,
        *,
        provider_token: str,
        team_id: str | None = None,
    ) -> DeploymentStatus:
        target = DeployTarget(provider_token=provider_token, project_name="", team_id=team_id)
        return await self.orchestrator.get_deployment_status(deployment_id, target)
