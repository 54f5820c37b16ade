"""
Landmark-phrase parsing of captured step descriptions.

The capture script describes each interaction with a fixed sentence:

    在 {页面} 页面的 {区域}，{动词}功能为 {组件} 的 {组件类型}，实现 {目的}。

Only the markers below are recognised. Text that does not follow the
template yields None from ``parse_landmarks``; callers then phrase the step
from its element label.
"""
import re
from dataclasses import dataclass
from typing import Optional

from providers.rule_based import action_verb

DEFAULT_REGION = '页面中心区'

KNOWN_REGIONS = (
    '页头导航区',
    '侧边导航栏',
    '页脚区域',
    '操作工具栏',
    '弹窗对话框',
    '数据列表区',
    '表单填写区',
    DEFAULT_REGION,
)

# Checked in order; first region with a matching selector/XPath token wins
STRUCTURAL_REGIONS = (
    ('页头导航区', {'header', 'top-bar', 'navbar', 'navbar-fixed-top'}),
    ('侧边导航栏', {'aside', 'nav', 'sidebar', 'left-menu', 'ant-layout-sider'}),
    ('页脚区域', {'footer'}),
    ('操作工具栏', {'toolbar', 'action-bar', 'btn-toolbar', 'ant-space'}),
    ('弹窗对话框', {'modal', 'dialog', 'ant-modal', 'el-dialog'}),
    ('数据列表区', {'table', 'grid', 'list', 'ant-table'}),
    ('表单填写区', {'form', 'ant-form', 'el-form'}),
)

REGION_MARKER = re.compile(r'页面的\s*(\S+?)\s*，')
COMPONENT_MARKERS = (
    re.compile(r'功能为\s+(.+?)\s+的\s'),
    re.compile(r'功能为\s*(.+?)\s*的'),
)
PURPOSE_MARKER = re.compile(r'，\s*实现\s*(.+?)\s*。?\s*$', re.S)

# Verb priority: recorded input > tab switch > selection > click
VERB_MARKERS = (
    ('录入了', '录入'),
    ('切换到', '切换到'),
    ('选择了', '选择'),
    ('点击了', '点击'),
)

TOKEN_SPLIT = re.compile(r'[^a-z0-9_\-]+')


@dataclass
class LandmarkPhrase:
    """Contextual pieces recovered from one templated description"""

    verb: str
    component: str
    purpose: str = ''
    region: Optional[str] = None


def parse_region(text: str) -> Optional[str]:
    """Region named by the ``页面的 X，`` marker, if it is a known region"""
    if not text:
        return None
    match = REGION_MARKER.search(text)
    if match and match.group(1) in KNOWN_REGIONS:
        return match.group(1)
    return None


def classify_structure(selector: str = '', xpath: str = '') -> str:
    """Coarse region from selector/XPath tokens (tags, ids and class names)"""
    tokens = {token for token in TOKEN_SPLIT.split(f"{selector} {xpath}".lower()) if token}
    for region, markers in STRUCTURAL_REGIONS:
        if tokens & markers:
            return region
    return DEFAULT_REGION


def infer_region(description: str, target_element: str = '', selector: str = '', xpath: str = '') -> str:
    return (
        parse_region(description)
        or parse_region(target_element)
        or classify_structure(selector, xpath)
    )


def parse_landmarks(text: str, action: str = '') -> Optional[LandmarkPhrase]:
    """
    Recover verb, component and purpose from a templated description.

    Args:
        text: Step description
        action: Action kind, used for the verb when no verb marker is present

    Returns:
        LandmarkPhrase, or None when the component marker is missing
    """
    if not text:
        return None

    purpose_match = PURPOSE_MARKER.search(text)
    purpose = purpose_match.group(1).strip() if purpose_match else ''
    body = text[:purpose_match.start()] if purpose_match else text

    component = None
    for pattern in COMPONENT_MARKERS:
        match = pattern.search(body)
        if match and match.group(1).strip():
            component = match.group(1).strip()
            break
    if component is None:
        return None

    verb = action_verb(action)
    for marker, marker_verb in VERB_MARKERS:
        if marker in body:
            verb = marker_verb
            break

    return LandmarkPhrase(verb=verb, component=component, purpose=purpose, region=parse_region(text))


def merge_sentence(page_title: str, region: str, phrases) -> str:
    """
    One business sentence for a run of steps on the same page region.
    The purpose comes from the last phrase of the run.
    """
    actions = '、'.join(f"{phrase.verb}{phrase.component}" for phrase in phrases)
    sentence = f"在 {page_title} 页面的 {region}，依次{actions}"
    purpose = phrases[-1].purpose if phrases else ''
    if purpose:
        sentence += f"，实现 {purpose}"
    return sentence + '。'
