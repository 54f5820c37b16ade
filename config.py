"""
Configuration management for the Manual Pilot backend.
Loads all settings from environment variables.
"""
import os
from dataclasses import dataclass, field, replace
from typing import Dict

from dotenv import load_dotenv

load_dotenv()


@dataclass
class ProviderSettings:
    """Credentials and endpoint for one description backend"""

    api_key: str = ''
    base_url: str = ''
    model: str = ''


@dataclass
class LLMConfig:
    """
    Effective VLM configuration for a single describe call.

    Built from environment defaults and overlaid with operator settings
    stored in the database (see agent.config_resolver).
    """

    providers: Dict[str, ProviderSettings] = field(default_factory=dict)
    request_timeout: float = 30.0
    liveness_timeout: float = 2.0
    max_tokens: int = 256
    temperature: float = 0.2

    def provider(self, provider_id: str) -> ProviderSettings:
        return self.providers.get(provider_id) or ProviderSettings()

    def copy(self) -> 'LLMConfig':
        return replace(
            self,
            providers={name: replace(settings) for name, settings in self.providers.items()}
        )


class Config:
    """Application configuration class"""

    # Flask Configuration
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_ENV', 'development') == 'development'
    HOST = os.getenv('HOST', '0.0.0.0')
    PORT = int(os.getenv('PORT', '3210'))

    # Paths
    BASE_DIR = os.path.dirname(os.path.abspath(__file__))
    LOGS_DIR = os.path.join(BASE_DIR, 'logs')
    DATABASE_PATH = os.getenv('DB_PATH', os.path.join(BASE_DIR, 'gpilot.db'))

    # Ollama local model (completely free, needs a running daemon)
    OLLAMA_BASE_URL = os.getenv('OLLAMA_BASE_URL', 'http://localhost:11434')
    OLLAMA_MODEL = os.getenv('OLLAMA_MODEL', 'qwen2.5-vl:7b')

    # Zhipu GLM-4V-Flash (free tier, OpenAI-compatible)
    ZHIPU_API_KEY = os.getenv('ZHIPU_API_KEY', '')
    ZHIPU_BASE_URL = os.getenv('ZHIPU_BASE_URL', 'https://open.bigmodel.cn/api/paas/v4')
    ZHIPU_MODEL = os.getenv('ZHIPU_MODEL', 'glm-4v-flash')

    # Google Gemini (free tier: 1500 RPD, 15 RPM)
    GEMINI_API_KEY = os.getenv('GEMINI_API_KEY', '')
    GEMINI_BASE_URL = os.getenv('GEMINI_BASE_URL', 'https://generativelanguage.googleapis.com/v1beta')
    GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-2.0-flash')

    # OpenRouter (free quota on Qwen2.5-VL)
    OPENROUTER_API_KEY = os.getenv('OPENROUTER_API_KEY', '')
    OPENROUTER_BASE_URL = os.getenv('OPENROUTER_BASE_URL', 'https://openrouter.ai/api/v1')
    OPENROUTER_MODEL = os.getenv('OPENROUTER_MODEL', 'qwen/qwen2.5-vl-72b-instruct:free')

    # OpenAI (paid, lowest priority)
    OPENAI_API_KEY = os.getenv('OPENAI_API_KEY', '')
    OPENAI_BASE_URL = os.getenv('OPENAI_BASE_URL', 'https://api.openai.com/v1')
    OPENAI_MODEL = os.getenv('OPENAI_MODEL', 'gpt-4o-mini')

    # AI Model Settings
    PROVIDER_TIMEOUT = float(os.getenv('PROVIDER_TIMEOUT', '30'))  # seconds, whole request
    LIVENESS_TIMEOUT = float(os.getenv('LIVENESS_TIMEOUT', '2'))  # seconds, Ollama probe
    VLM_MAX_TOKENS = 256
    VLM_TEMPERATURE = 0.2

    # Document generation
    PROGRESS_BUFFER_SIZE = int(os.getenv('PROGRESS_BUFFER_SIZE', '20'))
    GENERATION_JOIN_TIMEOUT = 60  # seconds the SSE stream waits for the document save

    @classmethod
    def llm_defaults(cls) -> LLMConfig:
        """Build the environment-level VLM configuration"""
        return LLMConfig(
            providers={
                'ollama': ProviderSettings(base_url=cls.OLLAMA_BASE_URL, model=cls.OLLAMA_MODEL),
                'zhipu': ProviderSettings(cls.ZHIPU_API_KEY, cls.ZHIPU_BASE_URL, cls.ZHIPU_MODEL),
                'gemini': ProviderSettings(cls.GEMINI_API_KEY, cls.GEMINI_BASE_URL, cls.GEMINI_MODEL),
                'openrouter': ProviderSettings(cls.OPENROUTER_API_KEY, cls.OPENROUTER_BASE_URL, cls.OPENROUTER_MODEL),
                'openai': ProviderSettings(cls.OPENAI_API_KEY, cls.OPENAI_BASE_URL, cls.OPENAI_MODEL),
            },
            request_timeout=cls.PROVIDER_TIMEOUT,
            liveness_timeout=cls.LIVENESS_TIMEOUT,
            max_tokens=cls.VLM_MAX_TOKENS,
            temperature=cls.VLM_TEMPERATURE,
        )

    @classmethod
    def validate(cls):
        """Validate that configuration values are usable"""
        errors = []

        if cls.PROVIDER_TIMEOUT <= 0:
            errors.append("PROVIDER_TIMEOUT must be positive")

        if cls.LIVENESS_TIMEOUT <= 0:
            errors.append("LIVENESS_TIMEOUT must be positive")

        if cls.PROGRESS_BUFFER_SIZE < 1:
            errors.append("PROGRESS_BUFFER_SIZE must be at least 1")

        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

        return True

    @classmethod
    def ensure_directories(cls):
        """Create required directories if they don't exist"""
        os.makedirs(cls.LOGS_DIR, exist_ok=True)
        db_dir = os.path.dirname(os.path.abspath(cls.DATABASE_PATH))
        os.makedirs(db_dir, exist_ok=True)
