from .base import (
    DeploymentResult,
    DeploymentStatus,
    DomainConfig,
    DomainConfigProvider,
    HostingProvider,
    HostingProviderFactory,
    ManifestEntry,
    ProviderProject,
    ProviderRequestError,
    ReadyState,
)
from .vercel import VercelClient

__all__ = [
    "DeploymentResult",
    "DeploymentStatus",
    "DomainConfig",
    "DomainConfigProvider",
    "HostingProvider",
    "HostingProviderFactory",
    "ManifestEntry",
    "ProviderProject",
    "ProviderRequestError",
    "ReadyState",
    "VercelClient",
]
