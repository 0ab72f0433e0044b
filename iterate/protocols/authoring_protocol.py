"""Test-authoring collaborator protocol interfaces."""

from typing import Protocol, Tuple, runtime_checkable

from ..schemas import FileState, GeneratedTestResult, GenerationRequest


@runtime_checkable
class AuthorClientProtocol(Protocol):
    """Black-box generator of test source from a system and a user prompt."""

    async def generate(self, system_prompt: str, prompt: str) -> GeneratedTestResult:
        ...

    async def aclose(self) -> None:
        ...


@runtime_checkable
class AuthoringStrategy(Protocol):
    """One way of turning a changed file into a complete test file.

    Returns the generated result and the lifecycle state it leads to.
    """

    name: str

    async def author(
        self, request: GenerationRequest
    ) -> Tuple[GeneratedTestResult, FileState]:
        ...
