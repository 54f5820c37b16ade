"""
Deterministic rule-based description, the terminal entry of the chain.
Never calls out and never fails.
"""
from providers.base import VLMRequest, VLMResponse

RULE_BASED_PROVIDER = 'rule-based'

ACTION_VERBS = {
    'click': '点击',
    'input': '输入',
    'select': '选择',
    'drag': '拖拽',
    'navigation': '导航至',
    'scroll': '滚动',
    'hover': '悬停在',
}


def action_verb(action: str) -> str:
    """Localized verb for an action kind; unknown kinds pass through"""
    return ACTION_VERBS.get(action, action)


def rule_based_description(request: VLMRequest) -> str:
    verb = action_verb(request.action)
    if request.masked_text:
        return f"在[{request.page_title}]页面，{verb}[{request.masked_text}]"
    return f"在[{request.page_title}]页面，{verb} {request.target_element}"


def rule_based_response(request: VLMRequest) -> VLMResponse:
    return VLMResponse(
        description=rule_based_description(request),
        provider=RULE_BASED_PROVIDER,
        used_free=True,
    )
