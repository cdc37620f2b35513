"""Factory for creating LLM provider instances."""

from typing import Optional
from config import Config
from llm.providers.base import LLMProvider
from llm.providers.openai import OpenAIProvider
from logger import get_logger

logger = get_logger()


def get_llm_provider(config: Config) -> Optional[LLMProvider]:
    """Create an LLM provider instance based on configuration.

    A provider is returned even without an API key; callers check
    ``is_configured()`` to pick a fallback instead of attempting a call.

    Args:
        config: Application configuration.

    Returns:
        LLMProvider instance, or None if LLM is disabled.

    Raises:
        ValueError: If the configured provider name is unknown.
    """
    if not config.llm_enabled:
        logger.debug("LLM categorization is disabled")
        return None

    provider_name = config.llm_provider

    if provider_name == "openai":
        if not config.llm_openai_api_key:
            logger.warning(
                "OpenAI provider selected but no API key configured; "
                "AI features will be unavailable"
            )
        logger.debug(
            f"Initializing OpenAI provider (model: {config.llm_openai_model or 'default'})"
        )
        return OpenAIProvider(
            api_key=config.llm_openai_api_key, model=config.llm_openai_model
        )

    if not provider_name:
        logger.info("No LLM provider configured")
        return None

    raise ValueError(f"Unknown LLM provider: {provider_name}")
