from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Values are read once and handed to each component at construction time,
    so nothing below the API layer looks at the process environment. An
    optional `.env` file in the working directory is honoured for local runs.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Hosting collaborator
    HOSTING_BACKEND: str = "github"  # "github" or "local"
    GITHUB_TOKEN: str = ""
    GITHUB_API_URL: str = "https://api.github.com"
    LOCAL_REPO_PATH: str = "."

    # Webhook intake. An empty secret disables signature checks (warned).
    GITHUB_WEBHOOK_SECRET: str = ""
    BOT_SIGNATURE: str = "auto-tests-bot"
    SKIP_DIRECTIVE: str = "@iterate skip"
    ALLOWED_BRANCHES: str = "*"
    CLEANUP_REMOVED_FUNCTIONS: bool = True

    # Test authoring
    GENERATION_STRATEGY: str = "incremental"  # "incremental" or "single-pass"
    TEST_FRAMEWORK: str = "jest"
    SUPPORTED_EXTENSIONS: str = ".ts,.js,.tsx,.jsx"
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_MAX_TOKENS: int = 3000
    OPENAI_TEMPERATURE: float = 0.3

    # Shared key for the direct generate-tests endpoint
    API_KEY: str = ""

    # Deadlines in seconds
    REQUEST_TIMEOUT: float = 30.0
    FILE_TIMEOUT: float = 120.0
    BATCH_TIMEOUT: float = 600.0
    READ_RETRIES: int = 2

    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    @property
    def supported_extensions(self) -> List[str]:
        return [
            ext.strip() for ext in self.SUPPORTED_EXTENSIONS.split(",") if ext.strip()
        ]


@lru_cache
def get_settings() -> Settings:
    return Settings()
