"""
OpenAI-compatible chat-completions backends: Zhipu GLM-4V-Flash,
OpenRouter Qwen2.5-VL and OpenAI itself.
"""
import logging
from typing import Any, Dict, List

import httpx

from config import LLMConfig
from providers.base import DescriptionBackend, ProviderError, VLMRequest, build_prompt

logger = logging.getLogger(__name__)


class OpenAICompatibleBackend(DescriptionBackend):
    """
    Generic ``/chat/completions`` adapter.

    The screenshot is forwarded as an ``image_url`` content part carrying the
    full data URI, unmodified.
    """

    def build_payload(self, request: VLMRequest, cfg: LLMConfig) -> Dict[str, Any]:
        parts: List[Dict[str, Any]] = [{'type': 'text', 'text': build_prompt(request)}]
        if request.screenshot:
            parts.append({
                'type': 'image_url',
                'image_url': {'url': request.screenshot, 'detail': 'high'},
            })
        return {
            'model': self.settings(cfg).model,
            'messages': [{'role': 'user', 'content': parts}],
            'max_tokens': cfg.max_tokens,
        }

    async def describe(self, request: VLMRequest, cfg: LLMConfig) -> str:
        settings = self.settings(cfg)
        url = settings.base_url.rstrip('/') + '/chat/completions'
        headers = {
            'Content-Type': 'application/json',
            'Authorization': f"Bearer {settings.api_key}",
        }

        try:
            async with self.client(cfg.request_timeout) as client:
                response = await client.post(url, headers=headers, json=self.build_payload(request, cfg))
        except httpx.HTTPError as e:
            raise ProviderError(self.provider_id, f"request failed: {str(e)}") from e

        if response.status_code != 200:
            raise ProviderError(self.provider_id, f"api status {response.status_code}: {response.text[:200]}")

        try:
            choices = response.json()['choices']
            content = choices[0]['message']['content']
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(self.provider_id, f"malformed response: {str(e)}") from e

        if not isinstance(content, str) or not content.strip():
            raise ProviderError(self.provider_id, "empty response")
        return content.strip()


class ZhipuBackend(OpenAICompatibleBackend):
    provider_id = 'zhipu'
    display_name = '智谱 GLM-4V-Flash (免费)'
    is_free = True
    setup_hint = '需要配置 ZHIPU_API_KEY'


class OpenRouterBackend(OpenAICompatibleBackend):
    provider_id = 'openrouter'
    display_name = 'OpenRouter Qwen2.5-VL (免费配额)'
    is_free = True
    setup_hint = '需要配置 OPENROUTER_API_KEY'


class OpenAIBackend(OpenAICompatibleBackend):
    provider_id = 'openai'
    display_name = 'OpenAI GPT-4o-mini (付费)'
    is_free = False
    setup_hint = '付费服务，需配置 OPENAI_API_KEY'
