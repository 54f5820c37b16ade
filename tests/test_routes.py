"""
HTTP surface tests using the Flask test client with injected services
"""
import json

import pytest

from agent.description_router import DescriptionRouter
from app import create_app
from conftest import PNG_1X1, StaticResolver, offline_config


@pytest.fixture
def router(offline_transport):
    return DescriptionRouter(resolver=StaticResolver(offline_config()), transport=offline_transport)


@pytest.fixture
def client(store, router):
    app = create_app(store=store, router=router)
    app.config['TESTING'] = True
    return app.test_client()


def parse_sse(body: str):
    events = []
    for block in body.strip().split('\n\n'):
        lines = dict(line.split(': ', 1) for line in block.splitlines())
        events.append((lines['event'], json.loads(lines['data'])))
    return events


def record_session(client, steps):
    project = client.post('/api/v1/projects', json={'name': '政务服务'}).get_json()['data']
    session = client.post('/api/v1/sessions', json={'project_id': project['id'], 'title': '登录流程'}).get_json()['data']
    created = [
        client.post(f"/api/v1/sessions/{session['id']}/steps", json=step).get_json()['data']
        for step in steps
    ]
    return project, session, created


class TestHealth:

    def test_health(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        assert response.get_json()['status'] == 'ok'


class TestProjectRoutes:

    def test_create_requires_name(self, client):
        assert client.post('/api/v1/projects', json={'name': ' '}).status_code == 400
        assert client.post('/api/v1/projects').status_code == 400

    def test_project_lifecycle(self, client):
        project, session, _ = record_session(client, [{'action': 'click'}])

        listed = client.get('/api/v1/projects').get_json()['data']
        detail = client.get(f"/api/v1/projects/{project['id']}").get_json()['data']

        assert [p['id'] for p in listed] == [project['id']]
        assert detail['sessions'][0]['id'] == session['id']
        assert detail['sessions'][0]['step_count'] == 1
        assert client.delete(f"/api/v1/projects/{project['id']}").status_code == 200
        assert client.get(f"/api/v1/projects/{project['id']}").status_code == 404

    def test_session_routes(self, client):
        project, session, _ = record_session(client, [])

        assert session['status'] == 'recording'
        assert client.post('/api/v1/sessions', json={'title': 'x'}).status_code == 400
        listed = client.get(f"/api/v1/sessions?project_id={project['id']}").get_json()['data']
        assert [s['id'] for s in listed] == [session['id']]

        response = client.patch(f"/api/v1/sessions/{session['id']}/status", json={'status': 'completed'})
        assert response.get_json()['data']['ended_at']
        assert client.get('/api/v1/sessions/missing').status_code == 404
        assert client.patch('/api/v1/sessions/missing/status', json={'status': 'x'}).status_code == 404

        assert client.delete(f"/api/v1/sessions/{session['id']}").status_code == 200
        assert client.get(f"/api/v1/sessions/{session['id']}").status_code == 404


class TestStepRoutes:

    def test_create_step_with_screenshot(self, client):
        _, session, steps = record_session(client, [{
            'action': 'click',
            'page_title': '登录页',
            'masked_text': '登录',
            'screenshot_data_url': PNG_1X1,
        }])

        step = steps[0]
        assert step['step_index'] == 1
        assert step['screenshot_id']

        shot = client.get(f"/api/v1/screenshots/{step['screenshot_id']}").get_json()['data']
        assert shot['data_url'] == PNG_1X1
        assert (shot['width'], shot['height']) == (1, 1)

    def test_step_validation(self, client):
        _, session, _ = record_session(client, [])

        assert client.post(f"/api/v1/sessions/{session['id']}/steps", json={'page_title': 'x'}).status_code == 400
        assert client.post('/api/v1/sessions/missing/steps', json={'action': 'click'}).status_code == 404
        assert client.get('/api/v1/screenshots/missing').status_code == 404

    def test_step_index_must_increase(self, client):
        _, session, steps = record_session(client, [{'action': 'click', 'step_index': 3}, {'action': 'input'}])

        assert [step['step_index'] for step in steps] == [3, 4]
        response = client.post(f"/api/v1/sessions/{session['id']}/steps", json={'action': 'click', 'step_index': 4})
        assert response.status_code == 400

    def test_patch_step(self, client):
        _, session, steps = record_session(client, [{'action': 'click'}])

        response = client.patch(
            f"/api/v1/sessions/{session['id']}/steps/{steps[0]['id']}",
            json={'ai_description': '点击登录', 'is_edited': True},
        )
        listed = client.get(f"/api/v1/sessions/{session['id']}/steps").get_json()['data']

        assert response.status_code == 200
        assert listed[0]['ai_description'] == '点击登录'
        assert listed[0]['is_edited'] is True


class TestAIRoutes:

    def test_provider_status(self, client):
        statuses = client.get('/api/v1/ai/providers/status').get_json()['data']

        assert [s['id'] for s in statuses] == ['ollama', 'zhipu', 'gemini', 'openrouter', 'openai']
        assert all(s['available'] is False for s in statuses)
        assert all(s['reason'] for s in statuses)

    def test_describe_step_persists(self, client):
        _, session, steps = record_session(client, [
            {'action': 'click', 'page_title': '登录页', 'masked_text': '登录'},
        ])

        data = client.get(f"/api/v1/ai/steps/{steps[0]['id']}/describe").get_json()
        listed = client.get(f"/api/v1/sessions/{session['id']}/steps").get_json()['data']

        assert data == {'description': '在[登录页]页面，点击[登录]', 'provider': 'rule-based', 'is_free': True}
        assert listed[0]['ai_description'] == '在[登录页]页面，点击[登录]'

    def test_describe_missing_step(self, client):
        assert client.get('/api/v1/ai/steps/missing/describe').status_code == 404

    def test_llm_provider_settings(self, client):
        assert client.put('/api/v1/llm/providers', json={'api_key': 'x'}).status_code == 400

        saved = client.put('/api/v1/llm/providers', json={'name': 'zhipu', 'api_key': 'zk-secret'}).get_json()
        listed = client.get('/api/v1/llm/providers').get_json()['data']

        assert saved['message'] == 'saved'
        assert listed[0]['name'] == 'zhipu'
        assert listed[0]['has_api_key'] is True
        assert 'api_key' not in listed[0]


class TestDocumentRoutes:

    def generate(self, client, steps):
        _, session, _ = record_session(client, steps)
        response = client.get(f"/api/v1/sessions/{session['id']}/generate")
        return session, response

    def test_generate_streams_progress_then_complete(self, client, store):
        session, response = self.generate(client, [
            {'action': 'click', 'page_title': '登录页', 'masked_text': '登录'},
            {'action': 'input', 'page_title': '登录页', 'masked_text': '用户名'},
            {'action': 'click', 'page_title': '首页', 'masked_text': '办事指南'},
        ])

        assert response.mimetype == 'text/event-stream'
        events = parse_sse(response.get_data(as_text=True))

        assert [name for name, _ in events] == ['progress'] * 4 + ['complete']
        assert [data.get('current') for _, data in events[:3]] == [1, 2, 3]
        assert events[3][1]['done'] is True
        doc_id = events[4][1]['doc_id']
        assert store.get_session(session['id']).generated_doc_id == doc_id
        assert store.get_session(session['id']).status == 'completed'

    def test_job_status_after_stream(self, client):
        _, response = self.generate(client, [{'action': 'click', 'page_title': '首页'}])
        response.get_data()

        job = client.get(f"/api/v1/jobs/{response.headers['X-Job-Id']}").get_json()['data']

        assert job['status'] == 'completed'
        assert job['doc_id']
        assert client.get('/api/v1/jobs/missing').status_code == 404

    def test_generate_unknown_session(self, client):
        assert client.get('/api/v1/sessions/missing/generate').status_code == 404

    def test_get_and_export_document(self, client):
        _, response = self.generate(client, [{'action': 'click', 'page_title': '登录页', 'masked_text': '登录'}])
        doc_id = parse_sse(response.get_data(as_text=True))[-1][1]['doc_id']

        document = client.get(f'/api/v1/documents/{doc_id}').get_json()['data']
        assert document['status'] == 'draft'
        assert document['business_view'][0]['title'] == '登录流程 - 操作说明'

        markdown = client.get(f'/api/v1/documents/{doc_id}/export?format=md&view=technical')
        assert markdown.status_code == 200
        assert markdown.headers['Content-Type'] == 'text/markdown; charset=utf-8'
        assert markdown.headers['Content-Disposition'].startswith('attachment;')
        body = markdown.get_data(as_text=True)
        assert body.startswith('# 登录流程')
        assert '## 技术参考文档' in body
        assert '### 第 1 步' in body

        exported = client.get(f'/api/v1/documents/{doc_id}/export?format=json').get_json()['data']
        assert exported['project_name'] == '政务服务'
        assert exported['technical_view'][0]['steps'][0]['tech_note'].startswith('元素：')

    def test_export_rejects_unknown_format(self, client):
        assert client.get('/api/v1/documents/any/export?format=pdf').status_code == 400

    def test_missing_document(self, client):
        assert client.get('/api/v1/documents/missing').status_code == 404
        assert client.get('/api/v1/documents/missing/export').status_code == 404


class TestMaskingRoutes:

    def test_default_rules(self, client):
        defaults = client.get('/api/v1/masking/defaults').get_json()['data']

        assert len(defaults) >= 3
        assert defaults[0] == {'pattern': r'1[3-9]\d{9}', 'alias': '【手机号】', 'type': 'regex', 'description': '手机号码'}

    def test_create_profile_and_add_rule(self, client):
        response = client.post('/api/v1/masking/profiles', json={
            'name': '政务标准脱敏规则集',
            'rules': [
                {'rule_type': 'regex', 'pattern': r'1[3-9]\d{9}', 'alias': '【手机号】', 'scope': 'global'},
                {'rule_type': 'regex', 'pattern': r'\d{17}[\dX]', 'alias': '【身份证】', 'scope': 'global'},
            ],
        })
        assert response.status_code == 201
        profile = response.get_json()['data']
        assert profile['name'] == '政务标准脱敏规则集'
        assert len(profile['rules']) == 2

        added = client.post(f"/api/v1/masking/profiles/{profile['id']}/rules", json={
            'rule_type': 'keyword', 'pattern': '采购单号', 'alias': '【采购单号】',
        })
        assert added.status_code == 201
        assert added.get_json()['data']['scope'] == 'session'

        listed = client.get('/api/v1/masking/profiles').get_json()['data']
        assert [p['id'] for p in listed] == [profile['id']]
        assert [rule['alias'] for rule in listed[0]['rules']] == ['【手机号】', '【身份证】', '【采购单号】']

    def test_profile_validation(self, client):
        assert client.post('/api/v1/masking/profiles', json={'name': ''}).status_code == 400
        assert client.post('/api/v1/masking/profiles', json={'name': 'x', 'rules': 'bad'}).status_code == 400
        bad_regex = {'name': 'x', 'rules': [{'rule_type': 'regex', 'pattern': '([', 'alias': '【x】'}]}
        assert client.post('/api/v1/masking/profiles', json=bad_regex).status_code == 400

    def test_rule_validation(self, client):
        profile = client.post('/api/v1/masking/profiles', json={'name': '默认'}).get_json()['data']

        missing_alias = {'rule_type': 'regex', 'pattern': r'\d+'}
        assert client.post(f"/api/v1/masking/profiles/{profile['id']}/rules", json=missing_alias).status_code == 400
        rule = {'rule_type': 'regex', 'pattern': r'\d+', 'alias': '【数字】'}
        response = client.post('/api/v1/masking/profiles/missing/rules', json=rule)
        assert response.status_code == 404
        assert response.get_json()['error'] == 'masking profile not found'
