"""
Google Gemini backend (free tier) using the google-generativeai SDK.
The screenshot is sent as an inline blob: data URI prefix stripped, bytes decoded.
"""
import logging
from typing import Any, List
from urllib.parse import urlparse

import google.generativeai as genai

from config import LLMConfig
from providers.base import DescriptionBackend, ProviderError, VLMRequest, build_prompt
from utils.image_utils import data_uri_mime_type, decode_image_payload

logger = logging.getLogger(__name__)


class GeminiBackend(DescriptionBackend):
    provider_id = 'gemini'
    display_name = 'Google Gemini 2.0 Flash (免费层)'
    is_free = True
    setup_hint = '需要配置 GEMINI_API_KEY（https://aistudio.google.com）'

    def build_parts(self, request: VLMRequest) -> List[Any]:
        parts: List[Any] = [build_prompt(request)]
        if request.screenshot:
            image_bytes = decode_image_payload(request.screenshot)
            if image_bytes:
                parts.append({
                    'mime_type': data_uri_mime_type(request.screenshot),
                    'data': image_bytes,
                })
            else:
                logger.debug("[PROVIDER] Gemini: screenshot is not valid base64, sending text only")
        return parts

    async def describe(self, request: VLMRequest, cfg: LLMConfig) -> str:
        settings = self.settings(cfg)

        try:
            # Configure Gemini from the per-call settings
            endpoint = urlparse(settings.base_url).netloc
            if endpoint:
                genai.configure(api_key=settings.api_key, client_options={'api_endpoint': endpoint})
            else:
                genai.configure(api_key=settings.api_key)

            model = genai.GenerativeModel(
                model_name=settings.model,
                generation_config={
                    'max_output_tokens': cfg.max_tokens,
                    'temperature': cfg.temperature,
                }
            )
            response = await model.generate_content_async(
                self.build_parts(request),
                request_options={'timeout': cfg.request_timeout}
            )
            text = response.text
        except Exception as e:
            # SDK raises transport, quota and "no candidates" errors of many types
            raise ProviderError(self.provider_id, f"generate_content failed: {str(e)}") from e

        if not isinstance(text, str) or not text.strip():
            raise ProviderError(self.provider_id, "empty gemini response")
        return text.strip()
