"""
Flask Web Application for Manual Pilot
Recording store, AI step descriptions and manual generation with SocketIO streaming
"""
import logging
import sys
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO

from agent.config_resolver import ConfigResolver
from agent.description_router import DescriptionRouter
from config import Config
from jobs.doc_generator import init_socketio
from storage.database import StepStore
from utils.logger import setup_logging

logger = logging.getLogger(__name__)


def create_app(
    store: Optional[StepStore] = None,
    router: Optional[DescriptionRouter] = None,
    buffer_size: Optional[int] = None
) -> Flask:
    """
    Build the Flask application.

    Args:
        store: Step store (opened at Config.DATABASE_PATH if omitted)
        router: Description router (built over the store's provider settings if omitted)
        buffer_size: Progress queue capacity for generation jobs

    Returns:
        Configured Flask app; the SocketIO server is available as ``app.socketio``
    """
    if store is None:
        Config.ensure_directories()
        store = StepStore(Config.DATABASE_PATH)
    if router is None:
        router = DescriptionRouter(resolver=ConfigResolver(store=store))

    app = Flask(__name__)
    app.config['SECRET_KEY'] = Config.SECRET_KEY
    app.json.ensure_ascii = False
    CORS(app)

    app.extensions['manual_pilot'] = {
        'store': store,
        'router': router,
        'buffer_size': buffer_size or Config.PROGRESS_BUFFER_SIZE,
    }

    # Initialize SocketIO for real-time generation updates
    socketio = SocketIO(app, cors_allowed_origins="*", async_mode='threading')
    init_socketio(socketio)
    app.socketio = socketio

    from routes.ai import ai_bp
    from routes.documents import documents_bp
    from routes.masking import masking_bp
    from routes.projects import projects_bp
    app.register_blueprint(projects_bp, url_prefix='/api/v1')
    app.register_blueprint(ai_bp, url_prefix='/api/v1')
    app.register_blueprint(documents_bp, url_prefix='/api/v1')
    app.register_blueprint(masking_bp, url_prefix='/api/v1')

    @app.route('/health')
    def health_check():
        """Health check endpoint for monitoring"""
        return jsonify({'status': 'ok', 'service': 'Manual Pilot Backend'}), 200

    @socketio.on('connect')
    def handle_connect():
        logger.info("[SOCKETIO] Client connected")

    @socketio.on('disconnect')
    def handle_disconnect():
        logger.info("[SOCKETIO] Client disconnected")

    logger.info("[SYSTEM] Application created")
    return app


if __name__ == '__main__':
    setup_logging()

    try:
        Config.validate()
        Config.ensure_directories()

        app = create_app()

        print(f"""
================================================================================
                          MANUAL PILOT BACKEND
                    Recording → AI description → manual
================================================================================

Server starting at: http://localhost:{Config.PORT}
Press Ctrl+C to stop

================================================================================
""")

        app.socketio.run(
            app,
            debug=Config.DEBUG,
            host=Config.HOST,
            port=Config.PORT,
            allow_unsafe_werkzeug=True  # For development
        )

    except Exception as e:
        logger.error(f"Failed to start application: {str(e)}", exc_info=True)
        sys.exit(1)
