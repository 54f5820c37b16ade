"""
Per-call resolution of VLM provider configuration.
Environment defaults are overlaid with the operator settings saved in the store,
so a saved key takes effect on the very next describe call.
"""
import logging
from typing import Optional

from config import Config, LLMConfig
from storage.database import StepStore

logger = logging.getLogger(__name__)


class ConfigResolver:
    """
    Resolves the effective LLMConfig.

    Args:
        defaults: Environment-level configuration (Config.llm_defaults() if omitted)
        store: Optional store holding LLMProviderSetting overrides
    """

    def __init__(self, defaults: Optional[LLMConfig] = None, store: Optional[StepStore] = None):
        self.defaults = defaults or Config.llm_defaults()
        self.store = store

    def resolve(self) -> LLMConfig:
        cfg = self.defaults.copy()
        if self.store is None:
            return cfg

        for name, settings in cfg.providers.items():
            try:
                override = self.store.get_active_llm_provider(name)
            except Exception as e:
                logger.warning(f"[CONFIG] Could not read provider setting '{name}': {str(e)}")
                continue
            if override is None:
                continue
            if override.api_key:
                settings.api_key = override.api_key
            if override.base_url:
                settings.base_url = override.base_url
            if override.model:
                settings.model = override.model

        return cfg
