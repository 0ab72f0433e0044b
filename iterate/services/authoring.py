import logging
from typing import Optional, Tuple

import httpx
import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from ..config.settings import Settings
from ..exceptions import CollaboratorUnavailable, ConfigurationError
from ..protocols.authoring_protocol import AuthorClientProtocol, AuthoringStrategy
from ..schemas import (
    FileState,
    GeneratedTestResult,
    GenerationMode,
    GenerationOutput,
    GenerationRequest,
)
from .prompts import build_complete_test_file_prompt, build_test_prompt, system_prompt

logger = logging.getLogger(__name__)

INCREMENTAL = "incremental"
SINGLE_PASS = "single-pass"


class OpenAITestAuthor:
    """Generates test files through an OpenAI-compatible Chat Completions API.

    The reply is requested as structured output matching ``GenerationOutput``
    and validated before anything is returned.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        base_url: str = "https://api.openai.com/v1",
        max_tokens: int = 3000,
        temperature: float = 0.3,
        timeout: float = 30.0,
        max_retries: int = 2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ConfigurationError("OpenAI API key not configured")
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            max_retries=max_retries,
            http_client=httpx.AsyncClient(transport=transport) if transport else None,
        )

    async def generate(self, system_prompt: str, prompt: str) -> GeneratedTestResult:
        try:
            completion = await self.client.chat.completions.parse(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                response_format=GenerationOutput,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except openai.AuthenticationError as e:
            raise CollaboratorUnavailable("Invalid OpenAI API key") from e
        except openai.RateLimitError as e:
            raise CollaboratorUnavailable(
                "OpenAI API rate limit exceeded. Please try again later."
            ) from e
        except openai.APIStatusError as e:
            raise CollaboratorUnavailable(
                f"Test authoring service returned {e.status_code}"
            ) from e
        except openai.APIConnectionError as e:
            raise CollaboratorUnavailable(f"Test authoring request failed: {e}") from e
        except (openai.OpenAIError, ValidationError) as e:
            raise CollaboratorUnavailable("Failed to generate tests from OpenAI") from e

        if not completion.choices:
            raise CollaboratorUnavailable("Malformed reply from test authoring service")
        message = completion.choices[0].message
        if message.refusal:
            raise CollaboratorUnavailable(f"Test generation refused: {message.refusal}")
        if message.parsed is None:
            raise CollaboratorUnavailable("Failed to generate tests from OpenAI")

        return GeneratedTestResult.from_output(message.parsed)

    async def aclose(self) -> None:
        await self.client.close()


class IncrementalStrategy:
    """Create a new test file, or update the existing one in place."""

    name = INCREMENTAL

    def __init__(self, author: AuthorClientProtocol):
        self.author_client = author

    async def author(
        self, request: GenerationRequest
    ) -> Tuple[GeneratedTestResult, FileState]:
        mode = GenerationMode.UPDATE if request.existing_tests else GenerationMode.NEW
        request = request.model_copy(update={"change_type": mode})
        result = await self.author_client.generate(
            system_prompt(request.framework), build_test_prompt(request)
        )
        state = FileState.UPDATED if mode == GenerationMode.UPDATE else FileState.GENERATED_NEW
        return result, state


class SinglePassStrategy:
    """Hand over the diff and take back the complete, reconciled test file."""

    name = SINGLE_PASS

    def __init__(self, author: AuthorClientProtocol):
        self.author_client = author

    async def author(
        self, request: GenerationRequest
    ) -> Tuple[GeneratedTestResult, FileState]:
        request = request.model_copy(update={"change_type": GenerationMode.REGENERATE})
        result = await self.author_client.generate(
            system_prompt(request.framework), build_complete_test_file_prompt(request)
        )
        return result, FileState.REGENERATED_COMPLETE


def create_test_author_from_settings(settings: Settings) -> OpenAITestAuthor:
    return OpenAITestAuthor(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_MODEL,
        base_url=settings.OPENAI_BASE_URL,
        max_tokens=settings.OPENAI_MAX_TOKENS,
        temperature=settings.OPENAI_TEMPERATURE,
        timeout=settings.REQUEST_TIMEOUT,
    )


def create_authoring_strategy(
    strategy: str, author: AuthorClientProtocol
) -> AuthoringStrategy:
    """Pick the authoring strategy named in configuration."""
    if strategy == INCREMENTAL:
        return IncrementalStrategy(author)
    if strategy == SINGLE_PASS:
        return SinglePassStrategy(author)
    raise ConfigurationError(
        f"Unknown GENERATION_STRATEGY {strategy!r}; use {INCREMENTAL!r} or {SINGLE_PASS!r}"
    )


async def generate_for_request(
    author: AuthorClientProtocol, request: GenerationRequest
) -> GeneratedTestResult:
    """Generate tests for a caller-built request, honouring its ``change_type``."""
    if request.change_type == GenerationMode.REGENERATE:
        prompt = build_complete_test_file_prompt(request)
    else:
        prompt = build_test_prompt(request)
    return await author.generate(system_prompt(request.framework), prompt)
