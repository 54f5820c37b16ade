"""
Persistent entities of the recording store.
Every row carries a string UUID primary key and ISO timestamps.
"""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Project:
    id: str
    name: str
    description: str = ''
    template_type: str = 'both'
    masking_profile_id: str = ''
    created_at: str = ''
    updated_at: str = ''
    sessions: List['Session'] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['sessions'] = [session.to_dict() for session in self.sessions]
        return data


@dataclass
class Session:
    id: str
    project_id: str
    title: str
    status: str = 'idle'
    target_url: str = ''
    started_at: Optional[str] = None
    ended_at: Optional[str] = None
    generated_doc_id: str = ''
    created_at: str = ''
    updated_at: str = ''
    step_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Step:
    """One captured user interaction within a recording session."""

    id: str
    session_id: str
    step_index: int
    action: str
    timestamp: int = 0
    target_selector: str = ''
    target_xpath: str = ''
    target_element: str = ''
    aria_label: str = ''
    masked_text: str = ''
    input_value: str = ''
    page_url: str = ''
    page_title: str = ''
    screenshot_id: str = ''
    ai_description: str = ''
    ai_notes: str = ''
    is_edited: bool = False
    is_masked: bool = False
    dom_fingerprint: str = ''
    created_at: str = ''
    updated_at: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Screenshot:
    id: str
    session_id: str
    step_id: str
    data_url: str
    captured_at: int = 0
    width: int = 0
    height: int = 0
    created_at: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MaskingRule:
    """Pattern replaced by an alias before captured text leaves the browser."""

    id: str
    profile_id: str
    rule_type: str
    pattern: str
    alias: str
    scope: str = 'session'
    is_active: bool = True
    description: str = ''
    created_at: str = ''
    updated_at: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MaskingProfile:
    id: str
    name: str
    created_at: str = ''
    updated_at: str = ''
    rules: List[MaskingRule] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GeneratedDocument:
    """Snapshot of a built document; views are stored as JSON text."""

    id: str
    session_id: str
    project_id: str
    status: str = 'draft'
    business_view: str = '[]'
    technical_view: str = '[]'
    created_at: str = ''
    updated_at: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LLMProviderSetting:
    """Operator override for one VLM provider; api_key is never serialized."""

    id: str
    name: str
    api_key: str = ''
    base_url: str = ''
    model: str = ''
    is_default: bool = False
    is_active: bool = True
    created_at: str = ''
    updated_at: str = ''

    def to_safe_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'model': self.model,
            'base_url': self.base_url,
            'has_api_key': bool(self.api_key),
            'is_default': self.is_default,
            'is_active': self.is_active,
        }
