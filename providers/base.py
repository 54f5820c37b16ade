"""
Base abstraction for step-description backends.

A backend turns one recorded step (plus an optional redacted screenshot)
into a one-sentence natural-language description. Backends are ranked by
the router; each one decides for itself whether it is usable under the
current configuration.
"""
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import httpx

from config import LLMConfig, ProviderSettings


@dataclass
class VLMRequest:
    """Ephemeral description request built from a single step"""

    action: str
    target_element: str = ''
    page_url: str = ''
    page_title: str = ''
    masked_text: str = ''
    screenshot: str = ''  # data URI or raw base64, already redacted


@dataclass
class VLMResponse:
    description: str
    provider: str
    used_free: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'description': self.description,
            'provider': self.provider,
            'is_free': self.used_free,
        }


@dataclass
class ProviderStatus:
    id: str
    name: str
    available: bool
    is_free: bool
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if not data['reason']:
            data.pop('reason')
        return data


class ProviderError(Exception):
    """A single backend failed; the router moves on to the next one"""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


PROMPT_TEMPLATE = """你是政务软件操作手册编写助手。根据以下截图和操作信息，用一句简洁的中文描述当前步骤。
格式：第N步：[动作] [目标]，[预期效果]（不要重复格式字样本身）

操作信息：
- 操作类型：{action}
- 目标元素：{target}
- 页面标题：{title}
- 相关文本：{text}

请直接输出描述内容，不要解释，不要重复格式说明。"""


def build_prompt(request: VLMRequest) -> str:
    """Fixed prompt shared by every backend; carries masked data only"""
    return PROMPT_TEMPLATE.format(
        action=request.action,
        target=request.target_element,
        title=request.page_title,
        text=request.masked_text,
    )


class DescriptionBackend(ABC):
    """
    One ranked entry of the description chain.

    Subclasses set ``provider_id``, ``display_name`` and ``is_free`` and
    implement ``describe``. Enablement defaults to "API key configured".
    """

    provider_id: str = ''
    display_name: str = ''
    is_free: bool = True
    setup_hint: str = ''

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            transport: Optional httpx transport (tests inject httpx.MockTransport)
        """
        self.transport = transport

    def settings(self, cfg: LLMConfig) -> ProviderSettings:
        return cfg.provider(self.provider_id)

    def client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self.transport)

    async def is_enabled(self, cfg: LLMConfig) -> bool:
        return bool(self.settings(cfg).api_key)

    def unavailable_reason(self, cfg: LLMConfig) -> str:
        return self.setup_hint

    @abstractmethod
    async def describe(self, request: VLMRequest, cfg: LLMConfig) -> str:
        """
        Produce a description for the step.

        Raises:
            ProviderError: On any transport, status or payload failure
        """

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.provider_id}>"
