"""
Access to the services attached to the running app
"""
from flask import current_app, jsonify

from agent.description_router import DescriptionRouter
from storage.database import StepStore


def get_store() -> StepStore:
    return current_app.extensions['manual_pilot']['store']


def get_router() -> DescriptionRouter:
    return current_app.extensions['manual_pilot']['router']


def get_buffer_size() -> int:
    return current_app.extensions['manual_pilot']['buffer_size']


def not_found(error):
    """404 response for a storage NotFoundError"""
    return jsonify({'error': f"{error.entity} not found"}), 404
