"""
Free-first routing of step-description requests.
Tries each ranked backend in order and degrades to a rule-based description
that cannot fail.
"""
import logging
from typing import List, Optional

import httpx

from agent.config_resolver import ConfigResolver
from config import Config, LLMConfig
from providers.base import DescriptionBackend, ProviderStatus, VLMRequest, VLMResponse
from providers.gemini import GeminiBackend
from providers.ollama import OllamaBackend
from providers.openai_compatible import OpenAIBackend, OpenRouterBackend, ZhipuBackend
from providers.rule_based import rule_based_response

logger = logging.getLogger(__name__)


def default_backends(transport: Optional[httpx.AsyncBaseTransport] = None) -> List[DescriptionBackend]:
    """The fixed chain: local model, three free hosted tiers, one paid provider"""
    return [
        OllamaBackend(transport),
        ZhipuBackend(transport),
        GeminiBackend(transport),
        OpenRouterBackend(transport),
        OpenAIBackend(transport),
    ]


class DescriptionRouter:
    """
    Resolves a description for one step, preferring free-tier backends.

    The backend order is fixed at construction and never changes. Provider
    failures are logged and only advance the chain; ``describe`` itself
    never raises.
    """

    def __init__(
        self,
        resolver: Optional[ConfigResolver] = None,
        backends: Optional[List[DescriptionBackend]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the router.

        Args:
            resolver: Configuration resolver, called once per describe/status call
            backends: Ranked backends (defaults to the five-provider chain)
            transport: httpx transport shared by the default HTTP backends
        """
        self.resolver = resolver or ConfigResolver()
        self.backends = tuple(backends if backends is not None else default_backends(transport))
        logger.info(f"[ROUTER] Initialized with chain: {' -> '.join(b.provider_id for b in self.backends)}")

    def _resolve_config(self) -> LLMConfig:
        try:
            return self.resolver.resolve()
        except Exception as e:
            logger.error(f"[ROUTER] Config resolution failed, using environment defaults: {str(e)}", exc_info=True)
            return Config.llm_defaults()

    async def _is_enabled(self, backend: DescriptionBackend, cfg: LLMConfig) -> bool:
        try:
            return await backend.is_enabled(cfg)
        except Exception as e:
            logger.warning(f"[ROUTER] Enablement check for {backend.provider_id} failed: {str(e)}")
            return False

    async def describe(self, request: VLMRequest) -> VLMResponse:
        """
        Generate a description for a step.

        Args:
            request: Step data (masked text and redacted screenshot only)

        Returns:
            VLMResponse from the first backend that succeeds, or the
            rule-based fallback
        """
        try:
            cfg = self._resolve_config()

            for backend in self.backends:
                if not await self._is_enabled(backend, cfg):
                    continue

                try:
                    description = await backend.describe(request, cfg)
                except Exception as e:
                    logger.warning(f"[ROUTER] {backend.provider_id} failed, degrading: {str(e)}")
                    continue

                if not description or not description.strip():
                    logger.warning(f"[ROUTER] {backend.provider_id} returned an empty description, degrading")
                    continue

                logger.info(f"[ROUTER] Description served by {backend.provider_id}")
                return VLMResponse(
                    description=description.strip(),
                    provider=backend.provider_id,
                    used_free=backend.is_free,
                )

        except Exception as e:
            logger.error(f"[ROUTER] Unexpected chain failure: {str(e)}", exc_info=True)

        logger.info("[ROUTER] No provider succeeded, using rule-based description")
        return rule_based_response(request)

    async def get_status(self) -> List[ProviderStatus]:
        """Report every backend in chain order with live availability"""
        cfg = self._resolve_config()
        statuses = []
        for backend in self.backends:
            available = await self._is_enabled(backend, cfg)
            statuses.append(ProviderStatus(
                id=backend.provider_id,
                name=backend.display_name,
                available=available,
                is_free=backend.is_free,
                reason=None if available else backend.unavailable_reason(cfg),
            ))
        return statuses
