"""
Builds business and technical manual views from a recorded session.
"""
import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from itertools import groupby
from typing import Any, Dict, List

from agent.landmarks import LandmarkPhrase, infer_region, merge_sentence, parse_landmarks
from providers.rule_based import action_verb
from storage.database import StepStore
from storage.models import GeneratedDocument, Screenshot, Step

logger = logging.getLogger(__name__)

BUSINESS_SUFFIX = '操作说明'
TECHNICAL_SUFFIX = '技术参考'

# Keys dropped from serialized DocSteps when empty
OPTIONAL_STEP_KEYS = ('tech_note', 'screenshot_url', 'page_url')


@dataclass
class DocStep:
    step_index: int
    action: str
    description: str
    screenshot_id: str = ''
    page_title: str = ''
    is_edited: bool = False
    tech_note: str = ''
    screenshot_url: str = ''
    page_url: str = ''

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in OPTIONAL_STEP_KEYS:
            if not data[key]:
                data.pop(key)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DocStep':
        return cls(
            step_index=int(data.get('step_index', 0)),
            action=data.get('action', ''),
            description=data.get('description', ''),
            screenshot_id=data.get('screenshot_id', ''),
            page_title=data.get('page_title', ''),
            is_edited=bool(data.get('is_edited', False)),
            tech_note=data.get('tech_note', ''),
            screenshot_url=data.get('screenshot_url', ''),
            page_url=data.get('page_url', ''),
        )


@dataclass
class DocSection:
    section_index: int
    title: str
    steps: List[DocStep] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'section_index': self.section_index,
            'title': self.title,
            'steps': [step.to_dict() for step in self.steps],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DocSection':
        return cls(
            section_index=int(data.get('section_index', 0)),
            title=data.get('title', ''),
            steps=[DocStep.from_dict(step) for step in data.get('steps') or []],
        )


@dataclass
class DocumentContent:
    session_title: str
    project_name: str
    generated_at: str
    business_view: List[DocSection] = field(default_factory=list)
    technical_view: List[DocSection] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'session_title': self.session_title,
            'project_name': self.project_name,
            'generated_at': self.generated_at,
            'business_view': [section.to_dict() for section in self.business_view],
            'technical_view': [section.to_dict() for section in self.technical_view],
        }

    def view(self, name: str) -> List[DocSection]:
        return self.technical_view if name == 'technical' else self.business_view


def describe_step(step: Step) -> str:
    """Displayed description: model text, then target text, then a generic sentence"""
    if step.ai_description:
        return step.ai_description
    if step.target_element:
        return step.target_element
    return f"在 [{step.page_title}] 页面执行 {step.action} 操作"


def tech_note(step: Step) -> str:
    return (
        f"元素：{step.target_element}\n"
        f"XPath：{step.target_xpath}\n"
        f"CSS：{step.target_selector}\n"
        f"Action：{step.action}"
    )


def step_region(step: Step) -> str:
    return infer_region(
        describe_step(step),
        step.target_element,
        step.target_selector,
        step.target_xpath,
    )


def step_phrase(step: Step) -> LandmarkPhrase:
    """
    Landmark phrase for one step inside a merged run.

    Templated markers are read from the model text first, then from the
    captured target text. Untemplated steps are phrased as the action verb
    plus the element label; with no label the whole description is used.
    """
    for text in (step.ai_description, step.target_element):
        phrase = parse_landmarks(text, step.action)
        if phrase is not None:
            return phrase

    label = (step.masked_text or step.aria_label).strip()
    if label:
        return LandmarkPhrase(verb=action_verb(step.action), component=label)
    return LandmarkPhrase(verb='', component=describe_step(step).rstrip('。 '))


class DocumentBuilder:
    """
    Reads a session from the store and produces its two manual views.
    Building never writes; ``save`` persists a snapshot.
    """

    def __init__(self, store: StepStore):
        self.store = store

    def build(self, session_id: str) -> DocumentContent:
        """
        Build business and technical views for a session.

        Args:
            session_id: Session to build

        Returns:
            DocumentContent with one section per view

        Raises:
            NotFoundError: If the session does not exist
        """
        session = self.store.get_session(session_id)
        project = self.store.find_project(session.project_id)
        steps = self.store.list_steps(session_id)
        screenshots = self.store.screenshots_by_step(session_id)

        logger.info(f"[DOC] Building document for session {session_id} ({len(steps)} steps)")

        technical_steps = [self._technical_entry(step, screenshots) for step in steps]
        business_steps = self._business_entries(steps, screenshots)

        logger.info(
            f"[DOC] Session {session_id}: {len(business_steps)} business entries, "
            f"{len(technical_steps)} technical entries"
        )

        return DocumentContent(
            session_title=session.title,
            project_name=project.name if project else '',
            generated_at=datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
            business_view=[DocSection(1, f"{session.title} - {BUSINESS_SUFFIX}", business_steps)],
            technical_view=[DocSection(1, f"{session.title} - {TECHNICAL_SUFFIX}", technical_steps)],
        )

    def save(self, session_id: str, content: DocumentContent) -> GeneratedDocument:
        return self.store.save_document(
            session_id,
            [section.to_dict() for section in content.business_view],
            [section.to_dict() for section in content.technical_view],
        )

    def load(self, doc_id: str) -> DocumentContent:
        """Rebuild DocumentContent from a stored snapshot"""
        document = self.store.get_document(doc_id)
        session = self.store.get_session(document.session_id)
        project = self.store.find_project(document.project_id)
        return DocumentContent(
            session_title=session.title,
            project_name=project.name if project else '',
            generated_at=_display_time(document.created_at),
            business_view=_load_sections(document.business_view),
            technical_view=_load_sections(document.technical_view),
        )

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def _technical_entry(self, step: Step, screenshots: Dict[str, Screenshot]) -> DocStep:
        entry = self._single_entry(step, screenshots)
        entry.tech_note = tech_note(step)
        entry.page_url = step.page_url
        return entry

    def _single_entry(self, step: Step, screenshots: Dict[str, Screenshot]) -> DocStep:
        screenshot = screenshots.get(step.id)
        return DocStep(
            step_index=step.step_index,
            action=step.action,
            description=describe_step(step),
            screenshot_id=step.screenshot_id,
            screenshot_url=screenshot.data_url if screenshot else '',
            page_title=step.page_title,
            is_edited=step.is_edited,
        )

    def _business_entries(self, steps: List[Step], screenshots: Dict[str, Screenshot]) -> List[DocStep]:
        entries: List[DocStep] = []
        keyed = [(step.page_title, step_region(step), step) for step in steps]

        for (page_title, region), group in groupby(keyed, key=lambda item: (item[0], item[1])):
            run = [item[2] for item in group]
            if len(run) > 1:
                entries.append(self._merge_run(page_title, region, run, screenshots))
            else:
                entries.append(self._single_entry(run[0], screenshots))

        return entries

    def _merge_run(
        self,
        page_title: str,
        region: str,
        run: List[Step],
        screenshots: Dict[str, Screenshot]
    ) -> DocStep:
        phrases = [step_phrase(step) for step in run]
        logger.debug(f"[DOC] Merging {len(run)} steps on '{page_title}' / {region}")

        first, last = run[0], run[-1]
        screenshot = screenshots.get(last.id)
        return DocStep(
            step_index=first.step_index,
            action=first.action,
            description=merge_sentence(page_title, region, phrases),
            screenshot_id=last.screenshot_id,
            screenshot_url=screenshot.data_url if screenshot else '',
            page_title=first.page_title,
            is_edited=first.is_edited,
        )


def _load_sections(raw: str) -> List[DocSection]:
    data = json.loads(raw or '[]')
    return [DocSection.from_dict(section) for section in data]


def _display_time(iso_value: str) -> str:
    try:
        return datetime.fromisoformat(iso_value).strftime('%Y-%m-%d %H:%M:%S')
    except (TypeError, ValueError):
        return iso_value or ''
