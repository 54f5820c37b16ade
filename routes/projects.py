"""
API routes for projects, recording sessions, steps and screenshots
"""
import logging

from flask import Blueprint, jsonify, request

from routes.services import get_store, not_found
from storage.database import STEP_FIELDS, NotFoundError
from utils.image_utils import image_dimensions

logger = logging.getLogger(__name__)

projects_bp = Blueprint('projects', __name__)


# ----------------------------------------------------------------------
# Projects
# ----------------------------------------------------------------------
@projects_bp.route('/projects', methods=['GET'])
def list_projects():
    """List all projects with their sessions"""
    try:
        projects = get_store().list_projects()
        return jsonify({'data': [project.to_dict() for project in projects]})

    except Exception as e:
        logger.error(f"[API] Failed to list projects: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@projects_bp.route('/projects', methods=['POST'])
def create_project():
    """
    Create a project

    Request body:
    {
        "name": "Project name",
        "description": "Optional description",
        "template_type": "business | technical | both",
        "masking_profile_id": "Optional masking profile"
    }
    """
    try:
        data = request.get_json(silent=True)
        if not data:
            return jsonify({'error': 'Request body required'}), 400

        name = (data.get('name') or '').strip()
        if not name:
            return jsonify({'error': 'Project name is required'}), 400

        project = get_store().create_project(
            name=name,
            description=data.get('description') or '',
            template_type=data.get('template_type') or 'both',
            masking_profile_id=data.get('masking_profile_id') or '',
        )
        logger.info(f"[API] Created project {project.id}")
        return jsonify({'data': project.to_dict()}), 201

    except Exception as e:
        logger.error(f"[API] Failed to create project: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@projects_bp.route('/projects/<project_id>', methods=['GET'])
def get_project(project_id):
    """Get a project with its sessions and their step counts"""
    try:
        project = get_store().get_project(project_id, with_sessions=True)
        return jsonify({'data': project.to_dict()})

    except NotFoundError as e:
        return not_found(e)
    except Exception as e:
        logger.error(f"[API] Failed to get project: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@projects_bp.route('/projects/<project_id>', methods=['DELETE'])
def delete_project(project_id):
    try:
        get_store().delete_project(project_id)
        logger.info(f"[API] Deleted project {project_id}")
        return jsonify({'message': 'deleted'})

    except Exception as e:
        logger.error(f"[API] Failed to delete project: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


# ----------------------------------------------------------------------
# Sessions
# ----------------------------------------------------------------------
@projects_bp.route('/sessions', methods=['GET'])
def list_sessions():
    """List sessions, newest first, optionally filtered by ?project_id="""
    try:
        sessions = get_store().list_sessions(project_id=request.args.get('project_id'))
        return jsonify({'data': [session.to_dict() for session in sessions]})

    except Exception as e:
        logger.error(f"[API] Failed to list sessions: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@projects_bp.route('/sessions', methods=['POST'])
def create_session():
    """
    Start a recording session

    Request body:
    {
        "project_id": "Owning project",
        "title": "Session title",
        "target_url": "Optional start URL"
    }
    """
    try:
        data = request.get_json(silent=True)
        if not data:
            return jsonify({'error': 'Request body required'}), 400

        project_id = (data.get('project_id') or '').strip()
        title = (data.get('title') or '').strip()
        if not project_id or not title:
            return jsonify({'error': 'project_id and title are required'}), 400

        session = get_store().create_session(project_id, title, target_url=data.get('target_url') or '')
        logger.info(f"[API] Started session {session.id} for project {project_id}")
        return jsonify({'data': session.to_dict()}), 201

    except Exception as e:
        logger.error(f"[API] Failed to create session: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@projects_bp.route('/sessions/<session_id>', methods=['GET'])
def get_session(session_id):
    try:
        return jsonify({'data': get_store().get_session(session_id).to_dict()})

    except NotFoundError as e:
        return not_found(e)
    except Exception as e:
        logger.error(f"[API] Failed to get session: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@projects_bp.route('/sessions/<session_id>/status', methods=['PATCH'])
def update_session_status(session_id):
    """Update session status; 'completed' stamps the end time"""
    try:
        data = request.get_json(silent=True) or {}
        status = (data.get('status') or '').strip()
        if not status:
            return jsonify({'error': 'status is required'}), 400

        session = get_store().update_session_status(session_id, status)
        logger.info(f"[API] Session {session_id} status -> {status}")
        return jsonify({'data': session.to_dict()})

    except NotFoundError as e:
        return not_found(e)
    except Exception as e:
        logger.error(f"[API] Failed to update session status: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@projects_bp.route('/sessions/<session_id>', methods=['DELETE'])
def delete_session(session_id):
    try:
        get_store().delete_session(session_id)
        return jsonify({'message': 'deleted'})

    except Exception as e:
        logger.error(f"[API] Failed to delete session: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


# ----------------------------------------------------------------------
# Steps
# ----------------------------------------------------------------------
@projects_bp.route('/sessions/<session_id>/steps', methods=['GET'])
def list_steps(session_id):
    try:
        steps = get_store().list_steps(session_id)
        return jsonify({'data': [step.to_dict() for step in steps]})

    except Exception as e:
        logger.error(f"[API] Failed to list steps: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@projects_bp.route('/sessions/<session_id>/steps', methods=['POST'])
def create_step(session_id):
    """
    Record a captured step

    Request body: the step fields (action required) plus an optional
    screenshot_data_url with screenshot_width / screenshot_height.
    """
    try:
        data = request.get_json(silent=True)
        if not data:
            return jsonify({'error': 'Request body required'}), 400

        action = (data.get('action') or '').strip()
        if not action:
            return jsonify({'error': 'action is required'}), 400

        store = get_store()
        store.get_session(session_id)

        fields = {name: data[name] for name in STEP_FIELDS if name in data and name != 'action'}
        step = store.add_step(
            session_id,
            action,
            step_index=int(data.get('step_index') or 0),
            **fields
        )

        data_url = data.get('screenshot_data_url') or ''
        if data_url:
            width = int(data.get('screenshot_width') or 0)
            height = int(data.get('screenshot_height') or 0)
            if not width or not height:
                width, height = image_dimensions(data_url)
            screenshot = store.add_screenshot(
                session_id,
                step.id,
                data_url,
                captured_at=step.timestamp,
                width=width,
                height=height,
            )
            step.screenshot_id = screenshot.id

        return jsonify({'data': step.to_dict()}), 201

    except NotFoundError as e:
        return not_found(e)
    except (TypeError, ValueError) as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"[API] Failed to create step: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@projects_bp.route('/sessions/<session_id>/steps/<step_id>', methods=['PATCH'])
def update_step(session_id, step_id):
    """Edit a step's description or its edited flag"""
    try:
        data = request.get_json(silent=True)
        if data is None:
            return jsonify({'error': 'Request body required'}), 400

        is_edited = data.get('is_edited')
        get_store().update_step(
            step_id,
            ai_description=data.get('ai_description') or None,
            is_edited=bool(is_edited) if is_edited is not None else None,
        )
        return jsonify({'message': 'updated'})

    except Exception as e:
        logger.error(f"[API] Failed to update step: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


# ----------------------------------------------------------------------
# Screenshots
# ----------------------------------------------------------------------
@projects_bp.route('/screenshots/<screenshot_id>', methods=['GET'])
def get_screenshot(screenshot_id):
    try:
        return jsonify({'data': get_store().get_screenshot(screenshot_id).to_dict()})

    except NotFoundError as e:
        return not_found(e)
    except Exception as e:
        logger.error(f"[API] Failed to get screenshot: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500
