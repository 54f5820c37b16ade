"""
Background document generation job runner
Describes every step of a session, builds the document and emits progress via SocketIO
"""
import asyncio
import logging
import queue
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from agent.description_router import DescriptionRouter
from agent.document_builder import DocumentBuilder
from config import Config
from providers.base import VLMRequest
from storage.database import StepStore

logger = logging.getLogger(__name__)

# Store active jobs
active_jobs: Dict[str, Dict] = {}

# Will be set by app.py
socketio = None


def init_socketio(sio):
    """Initialize SocketIO instance"""
    global socketio
    socketio = sio


@dataclass
class ProgressEvent:
    """One progress notification; ``done`` marks the terminal event"""

    total: int
    current: Optional[int] = None
    step_id: Optional[str] = None
    done: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'total': self.total, 'done': self.done}
        if self.current is not None:
            data['current'] = self.current
        if self.step_id:
            data['step_id'] = self.step_id
        if self.error:
            data['error'] = self.error
        return data


def emit_progress(job_id: str, event: ProgressEvent):
    """Emit a progress event to connected clients"""
    logger.debug(f"[EMIT_PROGRESS {job_id}] {event.to_dict()}")
    if socketio:
        try:
            payload = {'job_id': job_id, 'timestamp': datetime.now().isoformat()}
            payload.update(event.to_dict())
            socketio.emit('progress', payload)
        except Exception as e:
            logger.error(f"[EMIT_PROGRESS] Failed to emit: {str(e)}", exc_info=True)


def emit_status(job_id: str, status: str, data: Optional[Dict] = None):
    """Emit status update to connected clients"""
    logger.info(f"[EMIT_STATUS {job_id}] Status: {status}")
    if socketio:
        try:
            event_data = {
                'job_id': job_id,
                'status': status,
                'timestamp': datetime.now().isoformat()
            }
            if data:
                event_data.update(data)

            socketio.emit('status', event_data)
        except Exception as e:
            logger.error(f"[EMIT_STATUS] Failed to emit: {str(e)}", exc_info=True)


class DocumentGenerator:
    """
    Runs the sequential describe pass over a session's steps.

    Args:
        store: Step store
        router: Description router
    """

    def __init__(self, store: StepStore, router: DescriptionRouter):
        self.store = store
        self.router = router

    async def generate_for_session(self, session_id: str, sink: "queue.Queue", job_id: Optional[str] = None) -> int:
        """
        Describe every step of a session in index order.

        Puts one ProgressEvent per step on ``sink`` followed by a terminal
        ``done`` event. A failed write is reported in that step's event and
        the pass continues.

        Args:
            session_id: Session whose steps are described
            sink: Bounded queue receiving ProgressEvents (put blocks when full)
            job_id: Optional job id for SocketIO progress emits

        Returns:
            Number of steps processed

        Raises:
            Exception: Only when the step list cannot be loaded
        """
        steps = self.store.list_steps(session_id)
        screenshots = self.store.screenshots_by_step(session_id)
        total = len(steps)
        logger.info(f"[JOB] Describing {total} steps for session {session_id}")

        for current, step in enumerate(steps, start=1):
            screenshot = screenshots.get(step.id)
            request = VLMRequest(
                action=step.action,
                target_element=step.target_element,
                page_url=step.page_url,
                page_title=step.page_title,
                masked_text=step.masked_text,
                screenshot=screenshot.data_url if screenshot else '',
            )

            response = await self.router.describe(request)

            event = ProgressEvent(total=total, current=current, step_id=step.id)
            try:
                self.store.update_step_description(step.id, response.description)
            except Exception as e:
                logger.error(f"[JOB] Failed to save description for step {step.id}: {str(e)}", exc_info=True)
                event.error = str(e)

            logger.info(f"[JOB] Step {current}/{total} described by {response.provider}")
            sink.put(event)
            if job_id:
                emit_progress(job_id, event)

        done = ProgressEvent(total=total, done=True)
        sink.put(done)
        if job_id:
            emit_progress(job_id, done)
        return total


def start_generation_job(
    session_id: str,
    store: StepStore,
    router: DescriptionRouter,
    buffer_size: Optional[int] = None
) -> Dict:
    """
    Start a document generation job in a background thread

    Args:
        session_id: Session to generate a document for
        store: Step store
        router: Description router
        buffer_size: Progress queue capacity (Config.PROGRESS_BUFFER_SIZE if omitted)

    Returns:
        Job info dict holding the progress queue and the worker thread
    """
    job_id = str(uuid.uuid4())[:8]
    events: "queue.Queue" = queue.Queue(maxsize=buffer_size or Config.PROGRESS_BUFFER_SIZE)

    job = {
        'job_id': job_id,
        'session_id': session_id,
        'status': 'starting',
        'started_at': datetime.now().isoformat(),
        'doc_id': None,
        'events': events,
    }
    active_jobs[job_id] = job

    thread = threading.Thread(
        target=run_generation_thread,
        args=(job_id, session_id, store, router),
        daemon=True
    )
    job['thread'] = thread
    thread.start()

    logger.info(f"[JOB] Started job {job_id} for session {session_id}")
    return job


def run_generation_thread(job_id: str, session_id: str, store: StepStore, router: DescriptionRouter):
    """Run the generation job in its own event loop"""
    job = active_jobs[job_id]
    events = job['events']
    described = False

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        job['status'] = 'describing'
        emit_status(job_id, 'describing', {'session_id': session_id})

        generator = DocumentGenerator(store, router)
        loop.run_until_complete(generator.generate_for_session(session_id, events, job_id))
        described = True

        job['status'] = 'building'
        emit_status(job_id, 'building')

        builder = DocumentBuilder(store)
        content = builder.build(session_id)
        document = builder.save(session_id, content)
        store.update_session_status(session_id, 'completed')

        job['status'] = 'completed'
        job['doc_id'] = document.id
        job['completed_at'] = datetime.now().isoformat()
        emit_status(job_id, 'completed', {'doc_id': document.id})
        logger.info(f"[JOB] Job {job_id} completed, document {document.id}")

    except Exception as e:
        logger.error(f"[JOB] Job {job_id} failed: {str(e)}", exc_info=True)
        job['status'] = 'failed'
        job['error'] = str(e)
        emit_status(job_id, 'failed', {'error': str(e)})
        if not described:
            # Unblock stream readers waiting for the terminal event
            events.put(ProgressEvent(total=0, done=True, error=str(e)))

    finally:
        loop.close()


def get_job_status(job_id: str) -> Optional[Dict]:
    """Get status of a specific job (without the queue and thread handles)"""
    job = active_jobs.get(job_id)
    if job is None:
        return None
    return {key: value for key, value in job.items() if key not in ('events', 'thread')}
