"""
API routes for VLM providers and single-step descriptions
"""
import asyncio
import logging

from flask import Blueprint, jsonify, request

from providers.base import VLMRequest
from routes.services import get_router, get_store, not_found
from storage.database import NotFoundError

logger = logging.getLogger(__name__)

ai_bp = Blueprint('ai', __name__)

PROVIDER_NAMES = ('ollama', 'zhipu', 'gemini', 'openrouter', 'openai')


@ai_bp.route('/ai/providers/status', methods=['GET'])
def providers_status():
    """Provider roster in chain order with live availability"""
    try:
        statuses = asyncio.run(get_router().get_status())
        return jsonify({'data': [status.to_dict() for status in statuses]})

    except Exception as e:
        logger.error(f"[API] Failed to get provider status: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@ai_bp.route('/ai/steps/<step_id>/describe', methods=['GET'])
def describe_step(step_id):
    """Describe one step synchronously and persist the description"""
    try:
        store = get_store()
        step = store.get_step(step_id)

        screenshot = ''
        if step.screenshot_id:
            try:
                screenshot = store.get_screenshot(step.screenshot_id).data_url
            except NotFoundError:
                logger.warning(f"[API] Step {step_id} references missing screenshot {step.screenshot_id}")

        vlm_request = VLMRequest(
            action=step.action,
            target_element=step.target_element,
            page_url=step.page_url,
            page_title=step.page_title,
            masked_text=step.masked_text,
            screenshot=screenshot,
        )
        response = asyncio.run(get_router().describe(vlm_request))
        store.update_step_description(step_id, response.description)

        logger.info(f"[API] Step {step_id} described by {response.provider}")
        return jsonify(response.to_dict())

    except NotFoundError as e:
        return not_found(e)
    except Exception as e:
        logger.error(f"[API] Failed to describe step: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@ai_bp.route('/llm/providers', methods=['GET'])
def list_llm_providers():
    """Saved provider settings; API keys are reported only as has_api_key"""
    try:
        providers = get_store().list_llm_providers()
        return jsonify({'data': [provider.to_safe_dict() for provider in providers]})

    except Exception as e:
        logger.error(f"[API] Failed to list LLM providers: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@ai_bp.route('/llm/providers', methods=['PUT'])
def upsert_llm_provider():
    """
    Save settings for one provider; the next describe call uses them

    Request body:
    {
        "name": "ollama | zhipu | gemini | openrouter | openai",
        "api_key": "Optional key",
        "base_url": "Optional endpoint",
        "model": "Optional model",
        "is_default": false
    }
    """
    try:
        data = request.get_json(silent=True)
        if not data:
            return jsonify({'error': 'Request body required'}), 400

        name = (data.get('name') or '').strip()
        if not name:
            return jsonify({'error': 'Provider name is required'}), 400
        if name not in PROVIDER_NAMES:
            logger.warning(f"[API] Saving settings for unknown provider '{name}'")

        provider = get_store().upsert_llm_provider(
            name=name,
            api_key=(data.get('api_key') or '').strip(),
            base_url=(data.get('base_url') or '').strip(),
            model=(data.get('model') or '').strip(),
            is_default=bool(data.get('is_default')),
        )
        return jsonify({'message': 'saved', 'id': provider.id})

    except Exception as e:
        logger.error(f"[API] Failed to save LLM provider: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500
