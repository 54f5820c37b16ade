"""
API routes for masking profiles and their rules
"""
import logging

from flask import Blueprint, jsonify, request

from routes.services import get_store, not_found
from storage.database import NotFoundError

logger = logging.getLogger(__name__)

masking_bp = Blueprint('masking', __name__)

# Built-in regex rules offered to the capture extension
DEFAULT_MASKING_RULES = (
    {'pattern': r'1[3-9]\d{9}', 'alias': '【手机号】', 'type': 'regex', 'description': '手机号码'},
    {'pattern': r'\d{17}[\dX]', 'alias': '【身份证号】', 'type': 'regex', 'description': '身份证号'},
    {'pattern': r'[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}', 'alias': '【邮箱】', 'type': 'regex',
     'description': '电子邮箱'},
    {'pattern': r'\d{4}[\s\-]?\d{4}[\s\-]?\d{4}[\s\-]?\d{4}', 'alias': '【银行卡号】', 'type': 'regex',
     'description': '银行卡号'},
    {'pattern': r'\d{6}', 'alias': '【邮政编码】', 'type': 'regex', 'description': '邮政编码'},
)


@masking_bp.route('/masking/profiles', methods=['GET'])
def list_profiles():
    """All masking profiles with their rules"""
    try:
        profiles = get_store().list_masking_profiles()
        return jsonify({'data': [profile.to_dict() for profile in profiles]})

    except Exception as e:
        logger.error(f"[API] Failed to list masking profiles: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@masking_bp.route('/masking/profiles', methods=['POST'])
def create_profile():
    """
    Create a masking profile

    Request body:
    {
        "name": "政务标准脱敏规则集",
        "rules": [{"rule_type": "regex", "pattern": "...", "alias": "【手机号】", "scope": "global"}]
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        name = (data.get('name') or '').strip()
        if not name:
            return jsonify({'error': 'name is required'}), 400

        rules = data.get('rules') or []
        if not isinstance(rules, list) or not all(isinstance(rule, dict) for rule in rules):
            return jsonify({'error': 'rules must be a list of objects'}), 400

        profile = get_store().create_masking_profile(name, rules)
        logger.info(f"[API] Created masking profile {profile.id} with {len(profile.rules)} rules")
        return jsonify({'data': profile.to_dict()}), 201

    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"[API] Failed to create masking profile: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@masking_bp.route('/masking/profiles/<profile_id>/rules', methods=['POST'])
def add_rule(profile_id):
    """Add one rule to a profile; rule_type, pattern and alias are required"""
    try:
        data = request.get_json(silent=True) or {}
        rule = get_store().add_masking_rule(
            profile_id,
            (data.get('rule_type') or '').strip(),
            data.get('pattern') or '',
            (data.get('alias') or '').strip(),
            scope=data.get('scope') or 'session',
            description=data.get('description') or '',
        )
        return jsonify({'data': rule.to_dict()}), 201

    except NotFoundError as e:
        return not_found(e)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"[API] Failed to add masking rule: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@masking_bp.route('/masking/defaults', methods=['GET'])
def default_rules():
    return jsonify({'data': list(DEFAULT_MASKING_RULES)})
