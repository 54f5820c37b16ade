"""
Tests for Markdown/JSON export
"""
import re

from agent.document_builder import DocSection, DocStep, DocumentBuilder, DocumentContent
from conftest import PNG_1X1
from utils.markdown_exporter import export_filename, render_json, render_markdown


def sample_content():
    business = [DocStep(step_index=1, action='input', description='在 申请表 页面的 表单填写区，依次录入企业名称。',
                        screenshot_id='shot-1', screenshot_url='data:image/png;base64,AAAA'),
                DocStep(step_index=3, action='click', description='点击提交')]
    technical = [DocStep(step_index=1, action='input', description='企业名称输入框',
                         tech_note='元素：企业名称输入框\nXPath：//input\nCSS：input\nAction：input',
                         page_url='https://gov.example/apply')]
    return DocumentContent(
        session_title='营业执照申请',
        project_name='政务服务',
        generated_at='2026-10-19 09:30:00',
        business_view=[DocSection(1, '营业执照申请 - 操作说明', business)],
        technical_view=[DocSection(1, '营业执照申请 - 技术参考', technical)],
    )


class TestRenderMarkdown:

    def test_business_layout(self):
        markdown = render_markdown(sample_content(), 'business')

        assert markdown.startswith('# 营业执照申请\n\n> 项目：政务服务  \n> 生成时间：2026-10-19 09:30:00\n\n---\n\n')
        assert '## 操作说明文档\n\n## 营业执照申请 - 操作说明\n\n' in markdown
        assert '### 第 1 步\n\n在 申请表 页面的 表单填写区，依次录入企业名称。\n\n' in markdown
        assert '![步骤1截图](data:image/png;base64,AAAA)\n\n---\n\n' in markdown
        assert '```' not in markdown

    def test_technical_layout_has_fenced_note(self):
        markdown = render_markdown(sample_content(), 'technical')

        assert '## 技术参考文档' in markdown
        assert '```\n元素：企业名称输入框\nXPath：//input\nCSS：input\nAction：input\n```\n\n' in markdown

    def test_unknown_view_renders_business(self):
        assert '## 操作说明文档' in render_markdown(sample_content(), 'both')

    def test_one_heading_per_business_entry_in_order(self, store, seed_session):
        session, _ = seed_session([
            {'action': 'click', 'page_title': '首页', 'target_selector': 'header a'},
            {'action': 'click', 'page_title': '列表', 'target_selector': 'table td a', 'screenshot': PNG_1X1},
            {'action': 'input', 'page_title': '表单', 'target_selector': 'form input'},
        ])
        content = DocumentBuilder(store).build(session.id)

        markdown = render_markdown(content, 'business')

        headings = [int(k) for k in re.findall(r'^### 第 (\d+) 步$', markdown, re.M)]
        assert headings == [entry.step_index for entry in content.business_view[0].steps]
        assert headings == sorted(headings)


class TestRenderJson:

    def test_json_is_content_dict(self):
        data = render_json(sample_content())

        assert data['session_title'] == '营业执照申请'
        assert data['business_view'][0]['steps'][1] == {
            'step_index': 3, 'action': 'click', 'description': '点击提交',
            'screenshot_id': '', 'page_title': '', 'is_edited': False,
        }
        assert data['technical_view'][0]['steps'][0]['page_url'] == 'https://gov.example/apply'


class TestExportFilename:

    def test_unsafe_characters_replaced(self):
        content = sample_content()
        content.session_title = '申请/变更: 流程'

        assert export_filename(content, 'md') == '申请_变更_ 流程.md'
