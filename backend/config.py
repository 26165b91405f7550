"""
Backend Configuration Module

Centralizes environment variable loading, validation, and LLM provider initialization.
This module ensures:
- .env file is loaded exactly once at startup
- LLM provider is explicitly selected via LLM_PROVIDER env var
- Services receive an explicit LLMConfig instead of reading the environment
- Clear error messages if configuration is missing
"""

import os
from typing import Optional, Literal
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load .env file once at module import
load_dotenv()

ProviderName = Literal["groq", "openai", "mock"]

SUPPORTED_PROVIDERS = ("groq", "openai", "mock")
DEFAULT_GROQ_MODEL = "llama-3.1-8b-instant"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"


class LLMConfig(BaseModel):
    """
    Explicit LLM configuration handed to the mediator and skill analyzer.

    Built once by load_llm_config() at startup; tests construct it directly.
    """
    provider: ProviderName = Field("mock", description="Active LLM provider")
    groq_api_key: Optional[str] = Field(None, description="Groq API key")
    openai_api_key: Optional[str] = Field(None, description="OpenAI API key")
    groq_model: str = Field(DEFAULT_GROQ_MODEL, description="Groq chat model")
    openai_model: str = Field(DEFAULT_OPENAI_MODEL, description="OpenAI chat model")

    class Config:
        frozen = True

    @property
    def api_key(self) -> Optional[str]:
        """Key for the selected provider, or None (mock mode or missing key)."""
        if self.provider == "groq":
            return self.groq_api_key
        if self.provider == "openai":
            return self.openai_api_key
        return None

    @property
    def model_name(self) -> Optional[str]:
        if self.provider == "groq":
            return self.groq_model
        if self.provider == "openai":
            return self.openai_model
        return None

    @property
    def is_enabled(self) -> bool:
        """True when an external provider is selected and has a key."""
        return self.api_key is not None


def _clean_key(raw: Optional[str]) -> Optional[str]:
    if not raw or not raw.strip():
        return None
    return raw.strip()


def load_llm_config() -> LLMConfig:
    """
    Build LLMConfig from environment variables.

    Reads:
        LLM_PROVIDER: groq | openai | mock (default mock)
        GROQ_API_KEY / OPENAI_API_KEY
        GROQ_MODEL_NAME / OPENAI_MODEL_NAME (optional overrides)

    Returns:
        LLMConfig: Immutable configuration
    """
    provider = (os.getenv("LLM_PROVIDER") or "mock").strip().lower()

    # Validate provider value
    if provider not in SUPPORTED_PROVIDERS:
        print(f"[Config] ⚠️  Invalid LLM_PROVIDER='{provider}', defaulting to 'mock'")
        provider = "mock"

    return LLMConfig(
        provider=provider,
        groq_api_key=_clean_key(os.getenv("GROQ_API_KEY")),
        openai_api_key=_clean_key(os.getenv("OPENAI_API_KEY")),
        groq_model=os.getenv("GROQ_MODEL_NAME") or DEFAULT_GROQ_MODEL,
        openai_model=os.getenv("OPENAI_MODEL_NAME") or DEFAULT_OPENAI_MODEL,
    )


def create_llm_client(config: LLMConfig):
    """
    Create a chat-completions client for the configured provider.

    Groq and OpenAI expose the same chat.completions.create() interface,
    so callers treat the returned object uniformly.

    Args:
        config (LLMConfig): LLM configuration

    Returns:
        Groq or OpenAI client instance

    Raises:
        ValueError: If the provider is mock or its API key is not set
    """
    if config.provider == "mock":
        raise ValueError("LLM_PROVIDER=mock does not create a client")

    if not config.api_key:
        raise ValueError(
            f"{config.provider.upper()}_API_KEY is not set. "
            "Please set it in your .env file or environment variables."
        )

    if config.provider == "groq":
        from groq import Groq
        return Groq(api_key=config.api_key)

    from openai import OpenAI
    return OpenAI(api_key=config.api_key)


def validate_llm_config(config: LLMConfig):
    """
    Validate LLM configuration based on the selected provider.

    Raises:
        RuntimeError: If provider is set but API key is missing
    """
    if config.provider == "mock":
        return

    if not config.api_key:
        raise RuntimeError(
            f"{config.provider.upper()}_API_KEY missing while LLM_PROVIDER={config.provider}. "
            "The mediator will fall back to profile order."
        )


def log_llm_provider_status(config: LLMConfig):
    """
    Log LLM provider status at startup (never prints the key itself).
    """
    if config.provider == "mock":
        print("[Config] ⚠️  Mock LLM mode enabled (no external API calls, rule-based fallbacks)")
        return

    label = "Groq" if config.provider == "groq" else "OpenAI"
    if config.api_key:
        print(f"[Config] ✅ {label} LLM enabled (model: {config.model_name}, API key: {len(config.api_key)} chars)")
    else:
        print(f"[Config] ❌ {label} LLM enabled but {config.provider.upper()}_API_KEY not set")
