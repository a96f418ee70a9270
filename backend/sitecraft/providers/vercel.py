from __future__ import annotations

from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from .base import (
    DeploymentResult,
    DeploymentStatus,
    DomainConfig,
    ManifestEntry,
    ProviderProject,
    ProviderRequestError,
    ReadyState,
)

logger = structlog.get_logger(__name__)

DEFAULT_API_URL = "https://api.vercel.com"

_ALREADY_ASSIGNED_CODES = {"domain_already_in_use", "DOMAIN_ALREADY_EXISTS"}


class VercelClient:
    """Hosting and domain-configuration client for the Vercel REST API.

    Implements both ``HostingProvider`` and ``DomainConfigProvider``. The
    underlying ``httpx.AsyncClient`` is shared and owned by the caller.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token: str,
        *,
        team_id: str | None = None,
        base_url: str = DEFAULT_API_URL,
    ) -> None:
        self._http = http_client
        self._token = token
        self._team_id = team_id
        self._base_url = base_url.rstrip("/")

    def _headers(self, **extra: str) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self._token}"}
        headers.update(extra)
        return headers

    def _params(self) -> dict[str, str]:
        return {"teamId": self._team_id} if self._team_id else {}

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._http.request(
                method,
                f"{self._base_url}{path}",
                params=self._params(),
                **kwargs,
            )
        except httpx.HTTPError as exc:
            raise ProviderRequestError(f"{method} {path} failed: {exc}") from exc

    @staticmethod
    def _error_body(response: httpx.Response) -> tuple[str, str]:
        try:
            data = response.json()
        except ValueError:
            return "", response.reason_phrase or ""
        error = data.get("error") if isinstance(data, dict) else None
        if not isinstance(error, dict):
            return "", response.reason_phrase or ""
        return str(error.get("code") or ""), str(error.get("message") or response.reason_phrase or "")

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        code, message = self._error_body(response)
        raise ProviderRequestError(
            f"{action}: {message or response.status_code}",
            status_code=response.status_code,
            code=code or None,
        )

    async def upload_file(self, content: bytes, digest: str) -> None:
        response = await self._request(
            "POST",
            "/v2/files",
            content=content,
            headers=self._headers(
                **{
                    "Content-Type": "application/octet-stream",
                    "x-vercel-digest": digest,
                }
            ),
        )
        self._raise_for_status(response, f"Upload of {digest} failed")

    async def create_deployment(
        self,
        name: str,
        files: Sequence[ManifestEntry],
        *,
        framework: str,
    ) -> DeploymentResult:
        payload = {
            "name": name,
            "files": [{"file": entry.file, "sha": entry.sha, "size": entry.size} for entry in files],
            "projectSettings": {"framework": framework},
        }
        response = await self._request(
            "POST",
            "/v13/deployments",
            json=payload,
            headers=self._headers(),
        )
        self._raise_for_status(response, "Deployment creation failed")
        data = response.json()
        return DeploymentResult(
            deployment_id=data["id"],
            url=f"https://{data['url']}",
            ready_state=ReadyState.from_provider(data.get("readyState")),
        )

    async def get_deployment(self, deployment_id: str) -> DeploymentStatus:
        response = await self._request(
            "GET",
            f"/v13/deployments/{quote(deployment_id, safe='')}",
            headers=self._headers(),
        )
        self._raise_for_status(response, "Failed to get deployment status")
        data = response.json()
        return DeploymentStatus(
            ready_state=ReadyState.from_provider(data.get("readyState") or data.get("state")),
            url=f"https://{data['url']}",
        )

    async def add_domain_alias(self, project_name: str, domain: str) -> DomainConfig:
        response = await self._request(
            "POST",
            f"/v10/projects/{quote(project_name, safe='')}/domains",
            json={"name": domain},
            headers=self._headers(),
        )
        if response.is_success:
            data = response.json()
            return DomainConfig(
                configured=bool(data.get("configured", False)),
                verified=bool(data.get("verified", False)),
            )

        code, message = self._error_body(response)
        if (
            response.status_code == 409
            or code in _ALREADY_ASSIGNED_CODES
            or "already" in message.lower()
        ):
            logger.info("domain_alias_already_assigned", domain=domain, project=project_name)
            return DomainConfig(configured=True, verified=True)

        raise ProviderRequestError(
            f"Failed to add domain {domain}: {message or response.status_code}",
            status_code=response.status_code,
            code=code or None,
        )

    async def get_project(self, project_name: str) -> ProviderProject | None:
        response = await self._request(
            "GET",
            f"/v9/projects/{quote(project_name, safe='')}",
            headers=self._headers(),
        )
        if response.status_code == 404:
            return None
        self._raise_for_status(response, f"Failed to look up project {project_name}")
        data = response.json()
        return ProviderProject(id=data["id"], name=data["name"])

    async def get_domain_config(self, domain: str) -> DomainConfig:
        response = await self._request(
            "GET",
            f"/v6/domains/{quote(domain, safe='')}/config",
            headers=self._headers(),
        )
        if not response.is_success:
            # Unknown to the provider yet: report as not configured
            logger.info(
                "domain_config_unavailable",
                domain=domain,
                status_code=response.status_code,
            )
            return DomainConfig(configured=False, verified=False)

        data = response.json()
        return DomainConfig(
            configured=bool(data.get("configured", False)),
            verified=bool(data.get("verified", False)),
            cnames=list(data.get("cnames") or []),
        )
