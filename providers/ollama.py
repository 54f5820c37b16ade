"""
Ollama local backend (completely free).
Usable only while the local daemon answers its liveness probe.
"""
import logging

import httpx

from config import LLMConfig
from providers.base import DescriptionBackend, ProviderError, VLMRequest, build_prompt
from utils.image_utils import decode_image_payload, strip_data_uri_prefix

logger = logging.getLogger(__name__)


class OllamaBackend(DescriptionBackend):
    provider_id = 'ollama'
    display_name = 'Ollama 本地 (完全免费)'
    is_free = True

    async def is_enabled(self, cfg: LLMConfig) -> bool:
        """Probe ``/api/tags``; any error or non-200 means unavailable"""
        url = self.settings(cfg).base_url.rstrip('/') + '/api/tags'
        try:
            async with self.client(cfg.liveness_timeout) as client:
                response = await client.get(url)
            return response.status_code == 200
        except Exception as e:
            logger.debug(f"[PROVIDER] Ollama liveness probe failed: {str(e)}")
            return False

    def unavailable_reason(self, cfg: LLMConfig) -> str:
        return f"需要本地安装 Ollama 并运行 {self.settings(cfg).model}"

    async def describe(self, request: VLMRequest, cfg: LLMConfig) -> str:
        settings = self.settings(cfg)
        payload = {
            'model': settings.model,
            'prompt': build_prompt(request),
            'stream': False,
        }
        # Ollama expects raw base64; skip payloads that do not decode
        if request.screenshot and decode_image_payload(request.screenshot) is not None:
            payload['images'] = [strip_data_uri_prefix(request.screenshot)]

        try:
            async with self.client(cfg.request_timeout) as client:
                response = await client.post(settings.base_url.rstrip('/') + '/api/generate', json=payload)
        except httpx.HTTPError as e:
            raise ProviderError(self.provider_id, f"request failed: {str(e)}") from e

        if response.status_code != 200:
            raise ProviderError(self.provider_id, f"ollama status {response.status_code}")

        try:
            text = response.json()['response']
        except (ValueError, KeyError, TypeError) as e:
            raise ProviderError(self.provider_id, f"malformed response: {str(e)}") from e

        if not isinstance(text, str) or not text.strip():
            raise ProviderError(self.provider_id, "empty response")
        return text.strip()
