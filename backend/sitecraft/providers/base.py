"""Narrow capability interfaces for the external hosting and DNS providers.

The deployment orchestrator, publish coordinator and domain checker only talk
to these protocols, so tests can substitute fakes and another provider can be
plugged in without touching pipeline logic.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol


class ReadyState(str, Enum):
    QUEUED = "queued"
    BUILDING = "building"
    READY = "ready"
    ERROR = "error"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (ReadyState.READY, ReadyState.ERROR, ReadyState.CANCELED)

    @classmethod
    def from_provider(cls, value: str | None) -> ReadyState:
        normalized = (value or "").strip().lower()
        if normalized == "initializing":
            return cls.BUILDING
        if normalized == "cancelled":
            return cls.CANCELED
        try:
            return cls(normalized)
        except ValueError:
            return cls.QUEUED


@dataclass(slots=True, frozen=True)
class ManifestEntry:
    file: str
    sha: str
    size: int


@dataclass(slots=True, frozen=True)
class DeploymentResult:
    deployment_id: str
    url: str
    ready_state: ReadyState


@dataclass(slots=True, frozen=True)
class DeploymentStatus:
    ready_state: ReadyState
    url: str


@dataclass(slots=True, frozen=True)
class DomainConfig:
    configured: bool
    verified: bool
    cnames: list[str] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class ProviderProject:
    id: str
    name: str


class ProviderRequestError(RuntimeError):
    """Non-2xx response (or transport failure) from a provider API."""

    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class HostingProvider(Protocol):
    async def upload_file(self, content: bytes, digest: str) -> None: ...

    async def create_deployment(
        self,
        name: str,
        files: Sequence[ManifestEntry],
        *,
        framework: str,
    ) -> DeploymentResult: ...

    async def get_deployment(self, deployment_id: str) -> DeploymentStatus: ...

    async def add_domain_alias(self, project_name: str, domain: str) -> DomainConfig: ...

    async def get_project(self, project_name: str) -> ProviderProject | None: ...


class DomainConfigProvider(Protocol):
    async def get_domain_config(self, domain: str) -> DomainConfig: ...


# Builds a hosting provider bound to a token and optional team scope
HostingProviderFactory = Callable[[str, str | None], HostingProvider]
