"""
Shared fixtures: in-memory store, offline provider config and seeded sessions
"""
import sys
from pathlib import Path

import httpx
import pytest

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import LLMConfig, ProviderSettings  # noqa: E402
from storage.database import StepStore  # noqa: E402

PNG_1X1 = (
    'data:image/png;base64,'
    'iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8z8BQDwAEhQGAhKmMIQAAAABJRU5ErkJggg=='
)


class StaticResolver:
    """Resolver returning a fixed configuration"""

    def __init__(self, cfg: LLMConfig):
        self.cfg = cfg
        self.calls = 0

    def resolve(self) -> LLMConfig:
        self.calls += 1
        return self.cfg.copy()


def offline_config(**keys) -> LLMConfig:
    """LLMConfig with no credentials; pass e.g. zhipu='key' to enable one provider"""
    providers = {
        'ollama': ProviderSettings(base_url='http://ollama.test', model='qwen2.5-vl:7b'),
        'zhipu': ProviderSettings(base_url='http://zhipu.test/v4', model='glm-4v-flash'),
        'gemini': ProviderSettings(base_url='https://generativelanguage.googleapis.com/v1beta',
                                   model='gemini-2.0-flash'),
        'openrouter': ProviderSettings(base_url='http://openrouter.test/api/v1', model='qwen-vl'),
        'openai': ProviderSettings(base_url='http://openai.test/v1', model='gpt-4o-mini'),
    }
    for name, key in keys.items():
        providers[name].api_key = key
    return LLMConfig(providers=providers)


def not_found_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(404)


@pytest.fixture
def store():
    step_store = StepStore(':memory:')
    yield step_store
    step_store.close()


@pytest.fixture
def offline_transport():
    """Transport answering every request with 404 (no Ollama, no network)"""
    return httpx.MockTransport(not_found_handler)


@pytest.fixture
def seed_session(store):
    """Factory creating a project plus session with the given step dicts"""

    def _seed(steps=(), title='营业执照申请', project_name='政务服务'):
        project = store.create_project(project_name)
        session = store.create_session(project.id, title)
        created = []
        for fields in steps:
            fields = dict(fields)
            screenshot = fields.pop('screenshot', None)
            action = fields.pop('action', 'click')
            description = fields.pop('ai_description', '')
            step = store.add_step(session.id, action, **fields)
            if description:
                store.update_step_description(step.id, description)
                step.ai_description = description
            if screenshot:
                shot = store.add_screenshot(session.id, step.id, screenshot)
                step.screenshot_id = shot.id
            created.append(step)
        return session, created

    return _seed
