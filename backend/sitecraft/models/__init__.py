"""Domain models and the SQLAlchemy tables that persist them."""

from .domain_db import DomainDB
from .generation_db import GeneratedFileDB, GenerationVersionDB
from .project_db import ProjectDB
from .user import User

__all__ = [
    "DomainDB",
    "GeneratedFileDB",
    "GenerationVersionDB",
    "ProjectDB",
    "User",
]
