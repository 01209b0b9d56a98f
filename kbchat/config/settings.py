"""
kbchat - Centralized Configuration
===================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Security
--------
- ``PINECONE_API_KEY`` and ``AZURE_OPENAI_API_KEY`` are typed as
  ``SecretStr`` and have **no default value**.  If either is missing at
  startup, Pydantic raises a ``ValidationError`` and the service refuses
  to start.  The raw values never appear in repr, logs, or tracebacks.
- Both keys are also accepted under their legacy ``NEXT_PUBLIC_*`` names
  so existing deployment environments keep working.

Vector Index
------------
The index is provisioned once with a fixed shape (``PINECONE_DIMENSION``,
``PINECONE_METRIC``, ``PINECONE_CLOUD``/``PINECONE_REGION``).  The
dimension must match the output size of ``EMBEDDING_MODEL``
(``multilingual-e5-large`` → 1024).
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings.

    Every field is loaded from environment variables (or ``.env``).
    Fields *without* a default are **required**; the app will refuse
    to start until they are provided.

    Attributes
    ----------
    PINECONE_API_KEY : SecretStr
        API key for the Pinecone project.  **Required.**
    AZURE_OPENAI_API_KEY : SecretStr
        Key for the Azure OpenAI resource.  **Required.**
    AZURE_OPENAI_ENDPOINT : str
        Resource endpoint, e.g. ``https://my-resource.openai.azure.com/``.
        **Required.**
    AZURE_OPENAI_DEPLOYMENT_NAME : str
        Name of the chat model deployment.  **Required.**
    ENV : Literal["dev", "prod"]
        Environment mode controlling logging verbosity.
    MAX_ACTION_ROUNDS : int
        How many tool-call rounds the runtime allows per conversation turn.
    SEARCH_TOP_K : int
        Nearest neighbours returned by the retrieval action (at most 3).
    INDEX_ON_STARTUP : bool
        Launch the background provision + embed + upsert task on app start.
    """

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"

    # ── API Keys (REQUIRED, no default) ───────────────────────────────
    PINECONE_API_KEY: SecretStr = Field(validation_alias=AliasChoices("PINECONE_API_KEY", "NEXT_PUBLIC_PINECONE_API_KEY"))
    AZURE_OPENAI_API_KEY: SecretStr = Field(validation_alias=AliasChoices("AZURE_OPENAI_API_KEY", "NEXT_PUBLIC_AZURE_OPENAI_API_KEY"))

    # ── Azure OpenAI deployment (REQUIRED, no default) ────────────────
    AZURE_OPENAI_ENDPOINT: str
    AZURE_OPENAI_DEPLOYMENT_NAME: str
    AZURE_OPENAI_API_VERSION: str = "2024-04-01-preview"

    # ── Model Configuration ────────────────────────────────────────────
    EMBEDDING_MODEL: str = "multilingual-e5-large"
    LLM_TEMPERATURE: float = 0.2
    MAX_ACTION_ROUNDS: int = 5

    # ── Pinecone Index ─────────────────────────────────────────────────
    PINECONE_INDEX_NAME: str = "knowledge-base-data"
    PINECONE_NAMESPACE: str = "knowledge-base-data-namespace"
    PINECONE_DIMENSION: int = 1024
    PINECONE_METRIC: Literal["cosine", "euclidean", "dotproduct"] = "cosine"
    PINECONE_CLOUD: str = "aws"
    PINECONE_REGION: str = "us-east-1"

    # ── Provisioning Retry Policy ──────────────────────────────────────
    PINECONE_MAX_RETRIES: int = 3
    PINECONE_RETRY_DELAY_SECONDS: float = 2.0
    PINECONE_PROVISION_WAIT_SECONDS: float = 5.0

    # ── Retrieval ──────────────────────────────────────────────────────
    SEARCH_TOP_K: int = 3

    # ── HTTP Server ────────────────────────────────────────────────────
    CHAT_ENDPOINT: str = "/api/copilotkit"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    INDEX_ON_STARTUP: bool = True

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("AZURE_OPENAI_ENDPOINT")
    @classmethod
    def _endpoint_is_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"AZURE_OPENAI_ENDPOINT must be an http(s) URL, got {v!r}")
        return v.rstrip("/") + "/"


    @field_validator("LLM_TEMPERATURE")
    @classmethod
    def _temperature_range(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError(f"LLM_TEMPERATURE must be 0–2, got {v}")
        return v


    @field_validator("MAX_ACTION_ROUNDS")
    @classmethod
    def _rounds_range(cls, v: int) -> int:
        if not 1 <= v <= 10:
            raise ValueError(f"MAX_ACTION_ROUNDS must be 1–10, got {v}")
        return v


    @field_validator("SEARCH_TOP_K")
    @classmethod
    def _top_k_range(cls, v: int) -> int:
        if not 1 <= v <= 3:
            raise ValueError(f"SEARCH_TOP_K must be 1–3, got {v}")
        return v


    @field_validator("PINECONE_MAX_RETRIES")
    @classmethod
    def _retries_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"PINECONE_MAX_RETRIES must be ≥ 1, got {v}")
        return v


    @field_validator("PINECONE_DIMENSION")
    @classmethod
    def _dimension_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"PINECONE_DIMENSION must be ≥ 1, got {v}")
        return v

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=Path(__file__).resolve().parent.parent.parent / ".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return the process-wide ``Settings`` instance.

    Raises ``pydantic.ValidationError`` when a required variable is missing;
    callers at the process boundary turn that into an exit.
    """
    return Settings()
