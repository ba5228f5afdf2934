"""Provider selection, done once at startup from settings."""

import logging
from typing import Callable, Dict, List

from stylizer.config import Settings
from stylizer.errors import ConfigurationError
from stylizer.providers.base import TransformationProvider
from stylizer.providers.openai_images import OpenAIImageProvider
from stylizer.providers.replicate import ReplicateProvider
from stylizer.providers.simulated import SimulatedProvider

logger = logging.getLogger(__name__)


def _simulated(settings: Settings) -> TransformationProvider:
    return SimulatedProvider(pending_polls=settings.simulated_pending_polls)


def _replicate(settings: Settings) -> TransformationProvider:
    if not settings.replicate_api_token:
        raise ConfigurationError("STYLIZER_REPLICATE_API_TOKEN must be set for the replicate provider")
    return ReplicateProvider(
        api_token=settings.replicate_api_token,
        model_version=settings.replicate_model_version,
        base_url=settings.replicate_base_url,
        timeout=settings.http_timeout_seconds,
    )


def _openai(settings: Settings) -> TransformationProvider:
    if not settings.openai_api_key:
        raise ConfigurationError("STYLIZER_OPENAI_API_KEY must be set for the openai provider")
    return OpenAIImageProvider(
        api_key=settings.openai_api_key,
        image_model=settings.openai_image_model,
        analysis_model=settings.openai_analysis_model,
        timeout=settings.http_timeout_seconds,
    )


_FACTORIES: Dict[str, Callable[[Settings], TransformationProvider]] = {
    "simulated": _simulated,
    "replicate": _replicate,
    "openai": _openai,
}


def available_providers() -> List[str]:
    return sorted(_FACTORIES)


def build_provider(settings: Settings) -> TransformationProvider:
    """Instantiate the provider named by settings.provider."""
    key = settings.provider.strip().lower()
    factory = _FACTORIES.get(key)
    if factory is None:
        raise ConfigurationError(
            f"Unknown provider '{settings.provider}'. Available: {available_providers()}"
        )
    provider = factory(settings)
    logger.info("Using %s transformation provider", provider.name)
    return provider
