"""
Markdown and JSON export of generated manuals.
"""
import logging
from typing import Any, Dict, List

from agent.document_builder import DocumentContent

logger = logging.getLogger(__name__)

VIEW_BANNERS = {
    'business': '操作说明文档',
    'technical': '技术参考文档',
}


def render_markdown(content: DocumentContent, view: str = 'business') -> str:
    """
    Render one view of a document as Markdown.

    Args:
        content: Built or loaded document
        view: 'technical' for the technical reference, anything else for the business view

    Returns:
        Markdown text
    """
    view = 'technical' if view == 'technical' else 'business'
    lines: List[str] = [
        f"# {content.session_title}\n\n",
        f"> 项目：{content.project_name}  \n> 生成时间：{content.generated_at}\n\n---\n\n",
        f"## {VIEW_BANNERS[view]}\n\n",
    ]

    for section in content.view(view):
        lines.append(f"## {section.title}\n\n")
        for step in section.steps:
            lines.append(f"### 第 {step.step_index} 步\n\n")
            lines.append(f"{step.description}\n\n")
            if step.tech_note:
                lines.append(f"```\n{step.tech_note}\n```\n\n")
            if step.screenshot_url:
                lines.append(f"![步骤{step.step_index}截图]({step.screenshot_url})\n\n")
            lines.append("---\n\n")

    logger.debug(f"[EXPORT] Rendered {view} view of '{content.session_title}'")
    return ''.join(lines)


def render_json(content: DocumentContent) -> Dict[str, Any]:
    return content.to_dict()


def export_filename(content: DocumentContent, extension: str) -> str:
    """Attachment name for an export, e.g. ``订单录入.md``"""
    stem = content.session_title.strip() or 'document'
    for char in '\\/:*?"<>|':
        stem = stem.replace(char, '_')
    return f"{stem}.{extension}"
