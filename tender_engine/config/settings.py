from pydantic import Field
from pydantic_settings import BaseSettings


class ContextSettings(BaseSettings):
    """Settings for context assembly and budget enforcement."""
    token_budget: int = 64000
    chars_per_token: int = 4
    # Fraction of the budget above which a warning is attached to a valid bundle
    warning_ratio: float = 0.8
    section_separator: str = "\n\n---\n\n"
    # Batch generation shares one context across at most batch_max_packages
    batch_max_packages: int = 3
    batch_tokens_per_package: int = 1000
    batch_token_limit: int = 60000


class LLMSettings(BaseSettings):
    """Settings for the language model client."""
    backend: str = "claude"  # "claude" or "mock"
    model: str = "claude-sonnet-4-5-20250929"
    api_key: str | None = Field(default=None, validation_alias="ANTHROPIC_API_KEY")
    max_tokens: int = 8000
    temperature: float = 0.7
    timeout: float = 120.0
    default_retry_delay_seconds: int = 60


class ExportSettings(BaseSettings):
    """Settings for document export."""
    signed_url_ttl_seconds: int = 3600
    archive_suffix: str = "TenderDocuments"


class Settings(BaseSettings):
    """Global pipeline settings."""
    context: ContextSettings = Field(default_factory=ContextSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_nested_delimiter = "__"
        extra = "ignore"


settings = Settings()
