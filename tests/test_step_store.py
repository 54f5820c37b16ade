"""
Tests for the SQLite step store
"""
import pytest

from agent.config_resolver import ConfigResolver
from conftest import PNG_1X1, offline_config
from storage.database import NotFoundError


class TestProjectsAndSessions:

    def test_project_with_sessions_and_counts(self, store, seed_session):
        session, _ = seed_session([{'action': 'click'}, {'action': 'input'}])

        project = store.get_project(session.project_id, with_sessions=True)

        assert project.sessions[0].id == session.id
        assert project.sessions[0].step_count == 2
        assert project.to_dict()['sessions'][0]['step_count'] == 2

    def test_missing_entities_raise(self, store):
        with pytest.raises(NotFoundError):
            store.get_project('nope')
        with pytest.raises(NotFoundError):
            store.get_session('nope')
        with pytest.raises(NotFoundError):
            store.get_screenshot('nope')
        with pytest.raises(NotFoundError):
            store.get_document('nope')

    def test_new_session_is_recording(self, store):
        project = store.create_project('P')

        session = store.create_session(project.id, '录制')

        assert session.status == 'recording'
        assert session.started_at

    def test_completed_status_stamps_end_time(self, store, seed_session):
        session, _ = seed_session([])

        updated = store.update_session_status(session.id, 'completed')

        assert updated.ended_at
        assert store.get_session(session.id).status == 'completed'

    def test_delete_session_cascades(self, store, seed_session):
        session, steps = seed_session([{'action': 'click', 'screenshot': PNG_1X1}])

        store.delete_session(session.id)

        assert store.list_steps(session.id) == []
        with pytest.raises(NotFoundError):
            store.get_screenshot(steps[0].screenshot_id)


class TestSteps:

    def test_indices_assigned_in_creation_order(self, store, seed_session):
        session, steps = seed_session([{'action': 'click'}, {'action': 'input'}, {'action': 'select'}])

        assert [step.step_index for step in steps] == [1, 2, 3]
        assert [step.id for step in store.list_steps(session.id)] == [step.id for step in steps]

    def test_auto_index_follows_highest_explicit_index(self, store, seed_session):
        session, _ = seed_session([])

        explicit = store.add_step(session.id, 'click', step_index=5)
        following = store.add_step(session.id, 'input')

        assert explicit.step_index == 5
        assert following.step_index == 6
        assert [step.step_index for step in store.list_steps(session.id)] == [5, 6]

    def test_non_increasing_explicit_index_rejected(self, store, seed_session):
        session, _ = seed_session([{'action': 'click'}, {'action': 'input'}])

        with pytest.raises(ValueError):
            store.add_step(session.id, 'click', step_index=2)
        with pytest.raises(ValueError):
            store.add_step(session.id, 'click', step_index=1)
        assert store.count_steps(session.id) == 2

    def test_unknown_field_rejected(self, store, seed_session):
        session, _ = seed_session([])

        with pytest.raises(ValueError):
            store.add_step(session.id, 'click', ai_description='not allowed here')

    def test_update_step_editable_fields(self, store, seed_session):
        _, steps = seed_session([{'action': 'click'}])

        store.update_step(steps[0].id, ai_description='人工修订', is_edited=True)
        store.update_step(steps[0].id, ai_description='')

        step = store.get_step(steps[0].id)
        assert step.ai_description == '人工修订'
        assert step.is_edited is True

    def test_description_update_of_missing_step(self, store):
        with pytest.raises(NotFoundError):
            store.update_step_description('missing', 'x')

    def test_screenshot_linked_to_step(self, store, seed_session):
        session, steps = seed_session([{'action': 'click', 'screenshot': PNG_1X1}])

        shots = store.screenshots_by_step(session.id)

        assert shots[steps[0].id].data_url == PNG_1X1
        assert store.get_step(steps[0].id).screenshot_id == shots[steps[0].id].id


class TestLLMProviders:

    def test_upsert_keeps_existing_values(self, store):
        store.upsert_llm_provider('zhipu', api_key='k1', model='glm-4v-flash')
        store.upsert_llm_provider('zhipu', base_url='http://proxy.test/v4')

        setting = store.get_active_llm_provider('zhipu')
        assert setting.api_key == 'k1'
        assert setting.model == 'glm-4v-flash'
        assert setting.base_url == 'http://proxy.test/v4'

    def test_default_flag_is_exclusive(self, store):
        store.upsert_llm_provider('zhipu', api_key='k1', is_default=True)
        store.upsert_llm_provider('gemini', api_key='k2', is_default=True)

        defaults = [p.name for p in store.list_llm_providers() if p.is_default]
        assert defaults == ['gemini']

    def test_safe_dict_hides_key(self, store):
        setting = store.upsert_llm_provider('openai', api_key='sk-secret')

        data = setting.to_safe_dict()
        assert data['has_api_key'] is True
        assert 'sk-secret' not in str(data)

    def test_resolver_overlays_saved_settings(self, store):
        store.upsert_llm_provider('gemini', api_key='saved', model='gemini-1.5-flash')
        defaults = offline_config()

        cfg = ConfigResolver(defaults=defaults, store=store).resolve()

        assert cfg.provider('gemini').api_key == 'saved'
        assert cfg.provider('gemini').model == 'gemini-1.5-flash'
        assert cfg.provider('gemini').base_url == defaults.provider('gemini').base_url
        assert defaults.provider('gemini').api_key == ''


class TestMaskingProfiles:

    def test_create_profile_with_rules(self, store):
        profile = store.create_masking_profile('政务标准脱敏规则集', [
            {'rule_type': 'regex', 'pattern': r'1[3-9]\d{9}', 'alias': '【手机号】', 'scope': 'global'},
            {'rule_type': 'keyword', 'pattern': '采购单号', 'alias': '【采购单号】'},
        ])

        assert profile.name == '政务标准脱敏规则集'
        assert [rule.alias for rule in profile.rules] == ['【手机号】', '【采购单号】']
        assert [rule.scope for rule in profile.rules] == ['global', 'session']
        assert all(rule.is_active for rule in profile.rules)
        assert all(rule.profile_id == profile.id for rule in profile.rules)

    def test_add_rule_and_list(self, store):
        profile = store.create_masking_profile('默认')

        store.add_masking_rule(profile.id, 'regex', r'\d{17}[\dX]', '【身份证号】', description='身份证号')
        listed = store.list_masking_profiles()

        assert [p.id for p in listed] == [profile.id]
        assert listed[0].rules[0].alias == '【身份证号】'
        assert listed[0].rules[0].description == '身份证号'
        assert store.get_masking_profile(profile.id).rules[0].pattern == r'\d{17}[\dX]'

    def test_rule_for_unknown_profile(self, store):
        with pytest.raises(NotFoundError):
            store.add_masking_rule('missing', 'regex', r'\d+', '【数字】')
        with pytest.raises(NotFoundError):
            store.get_masking_profile('missing')

    def test_invalid_rules_rejected_before_profile_is_stored(self, store):
        with pytest.raises(ValueError):
            store.create_masking_profile('坏规则', [{'rule_type': 'regex', 'pattern': '([', 'alias': '【x】'}])
        with pytest.raises(ValueError):
            store.create_masking_profile('缺字段', [{'rule_type': 'regex', 'pattern': r'\d+'}])

        assert store.list_masking_profiles() == []
