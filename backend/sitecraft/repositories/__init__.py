from .domain_repository import DomainRepository
from .generation_repository import GenerationRepository
from .project_repository import ProjectRepository

__all__ = ["DomainRepository", "GenerationRepository", "ProjectRepository"]
