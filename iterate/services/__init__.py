"""Services for the application."""

from .authoring import (
    IncrementalStrategy,
    OpenAITestAuthor,
    SinglePassStrategy,
    create_authoring_strategy,
    create_test_author_from_settings,
)
from .hosting_factory import create_hosting_client, create_hosting_client_from_settings
from .orchestrator import LifecycleOrchestrator
from .sync_coordinator import SyncCoordinator

__all__ = [
    "IncrementalStrategy",
    "LifecycleOrchestrator",
    "OpenAITestAuthor",
    "SinglePassStrategy",
    "SyncCoordinator",
    "create_authoring_strategy",
    "create_hosting_client",
    "create_hosting_client_from_settings",
    "create_test_author_from_settings",
]
