"""Application services for ``kira latest``.

Services hold the workflow logic, coordinating between the domain layer
(core/) and git access (git/).
"""

from .discovery import Discovery, DiscoveryError, discover_repositories, order_repositories
from .latest import LatestError, LatestService
from .recovery import recovery_steps, report_results
from .update import ContinueResult, RepositoryOperationResult, UpdateOrchestrator

__all__ = [
    # discovery
    "Discovery",
    "DiscoveryError",
    "discover_repositories",
    "order_repositories",
    # latest
    "LatestError",
    "LatestService",
    # recovery
    "recovery_steps",
    "report_results",
    # update
    "ContinueResult",
    "RepositoryOperationResult",
    "UpdateOrchestrator",
]
