from typing import Any, AsyncIterator, Callable, Optional

from fastapi import Depends

from iterate.config.settings import Settings, get_settings
from iterate.protocols.authoring_protocol import AuthorClientProtocol
from iterate.protocols.hosting_protocol import HostingProtocol
from iterate.services import (
    SyncCoordinator,
    create_hosting_client_from_settings,
    create_test_author_from_settings,
)


class LazyCollaborator:
    """Builds a collaborator on first attribute access.

    Webhook deliveries are authenticated by the coordinator, so credentials
    are only checked once a verified event actually needs the collaborator.
    Closing one that was never built is a no-op.
    """

    def __init__(self, factory: Callable[[], Any]):
        self._factory = factory
        self._instance: Optional[Any] = None

    @property
    def built(self) -> bool:
        return self._instance is not None

    def _resolve(self) -> Any:
        if self._instance is None:
            self._instance = self._factory()
        return self._instance

    def __getattr__(self, name: str) -> Any:
        return getattr(self._resolve(), name)

    async def aclose(self) -> None:
        if self._instance is not None:
            await self._instance.aclose()


# Collaborators are request-scoped so their HTTP clients close with the request.
async def get_hosting_client(
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[HostingProtocol]:
    hosting = LazyCollaborator(lambda: create_hosting_client_from_settings(settings))
    try:
        yield hosting
    finally:
        await hosting.aclose()


async def get_test_author(
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[AuthorClientProtocol]:
    author = create_test_author_from_settings(settings)
    try:
        yield author
    finally:
        await author.aclose()


async def get_deferred_test_author(
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[AuthorClientProtocol]:
    author = LazyCollaborator(lambda: create_test_author_from_settings(settings))
    try:
        yield author
    finally:
        await author.aclose()


# The coordinator depends on the collaborator getters above
def get_sync_coordinator(
    settings: Settings = Depends(get_settings),
    hosting: HostingProtocol = Depends(get_hosting_client),
    author: AuthorClientProtocol = Depends(get_deferred_test_author),
) -> SyncCoordinator:
    return SyncCoordinator.from_settings(settings, hosting, author)
