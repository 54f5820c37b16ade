"""
API routes for document generation (SSE progress), retrieval and export
"""
import json
import logging
import queue
from urllib.parse import quote

from flask import Blueprint, Response, jsonify, request, stream_with_context

from agent.document_builder import DocumentBuilder
from config import Config
from jobs.doc_generator import get_job_status, start_generation_job
from routes.services import get_buffer_size, get_router, get_store, not_found
from storage.database import NotFoundError
from utils.markdown_exporter import export_filename, render_json, render_markdown

logger = logging.getLogger(__name__)

documents_bp = Blueprint('documents', __name__)

SSE_HEADERS = {
    'Cache-Control': 'no-cache',
    'Connection': 'keep-alive',
    'X-Accel-Buffering': 'no',
}


def sse_event(event: str, data) -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


@documents_bp.route('/sessions/<session_id>/generate', methods=['GET'])
def generate_document(session_id):
    """
    Describe every step of a session and build its manual.
    Streams ``progress`` events, then ``complete`` with the new doc_id.
    """
    try:
        store = get_store()
        store.get_session(session_id)
        job = start_generation_job(session_id, store, get_router(), buffer_size=get_buffer_size())

    except NotFoundError as e:
        return not_found(e)
    except Exception as e:
        logger.error(f"[API] Failed to start generation: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500

    logger.info(f"[API] Streaming generation job {job['job_id']} for session {session_id}")

    def event_stream():
        events: queue.Queue = job['events']
        while True:
            event = events.get()
            yield sse_event('progress', event.to_dict())
            if event.done:
                break

        job['thread'].join(timeout=Config.GENERATION_JOIN_TIMEOUT)
        if job.get('doc_id'):
            yield sse_event('complete', {'doc_id': job['doc_id']})
        else:
            yield sse_event('error', {'error': job.get('error') or 'document generation did not finish'})

    return Response(
        stream_with_context(event_stream()),
        mimetype='text/event-stream',
        headers={**SSE_HEADERS, 'X-Job-Id': job['job_id']},
    )


@documents_bp.route('/jobs/<job_id>', methods=['GET'])
def get_generation_job(job_id):
    """Get status of a generation job"""
    try:
        status = get_job_status(job_id)

        if not status:
            return jsonify({'error': 'Job not found'}), 404

        return jsonify({'data': status})

    except Exception as e:
        logger.error(f"[API] Failed to get job status: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@documents_bp.route('/documents/<doc_id>', methods=['GET'])
def get_document(doc_id):
    """Stored document snapshot with decoded views"""
    try:
        document = get_store().get_document(doc_id)
        return jsonify({
            'data': {
                'id': document.id,
                'session_id': document.session_id,
                'project_id': document.project_id,
                'status': document.status,
                'created_at': document.created_at,
                'business_view': json.loads(document.business_view or '[]'),
                'technical_view': json.loads(document.technical_view or '[]'),
            }
        })

    except NotFoundError as e:
        return not_found(e)
    except Exception as e:
        logger.error(f"[API] Failed to get document: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@documents_bp.route('/documents/<doc_id>/export', methods=['GET'])
def export_document(doc_id):
    """
    Export a stored document

    Query params:
        format: md (default) or json
        view: business (default) or technical, for Markdown
    """
    export_format = request.args.get('format') or 'md'
    view = request.args.get('view') or 'business'

    if export_format not in ('md', 'json'):
        return jsonify({'error': 'unsupported format'}), 400

    try:
        content = DocumentBuilder(get_store()).load(doc_id)

        if export_format == 'json':
            return jsonify({'data': render_json(content)})

        markdown = render_markdown(content, view)
        filename = export_filename(content, 'md')
        logger.info(f"[API] Exported document {doc_id} ({view}) as Markdown")
        return Response(
            markdown.encode('utf-8'),
            content_type='text/markdown; charset=utf-8',
            headers={'Content-Disposition': _attachment(filename)},
        )

    except NotFoundError as e:
        return not_found(e)
    except Exception as e:
        logger.error(f"[API] Failed to export document: {str(e)}", exc_info=True)
        return jsonify({'error': str(e)}), 500


def _attachment(filename: str) -> str:
    """Content-Disposition with an ASCII fallback and the UTF-8 name"""
    return f"attachment; filename=\"manual.md\"; filename*=UTF-8''{quote(filename)}"
