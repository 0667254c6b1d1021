"""
Helpers for queueing Celery tasks from request handlers.

Queueing never fails a request: when the broker is unreachable the task is
dropped, the failure is logged and the caller gets False.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional, Tuple
from celery import Task
from kombu import Connection
from kombu.exceptions import KombuError, OperationalError

from jobboard.core.config import settings

logger = logging.getLogger(__name__)

QUEUE_TIMEOUT_SECONDS = 5

# Queueing runs off the event loop so a slow broker cannot stall uvicorn
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="celery_queue")


def _queue_task_sync(task: Task, args: tuple, kwargs: dict) -> Tuple[Optional[str], str]:
    """
    Send the task over a fresh broker connection.

    Returns:
        (task_id, "") on success, (None, error_message) on failure
    """
    try:
        with Connection(settings.REDIS_URL) as conn:
            result = task.apply_async(
                args=args,
                kwargs=kwargs,
                connection=conn,
                retry=True,
                retry_policy={
                    'max_retries': 3,
                    'interval_start': 0,
                    'interval_step': 0.2,
                    'interval_max': 0.2,
                }
            )
            return result.id, ""
    except (KombuError, OperationalError, OSError) as e:
        return None, str(e)


def queue_task_safely(task: Task, *args, **kwargs) -> bool:
    """
    Queue a Celery task without letting broker problems reach the caller.

    Args:
        task: The Celery task to queue
        *args: Positional arguments for the task
        **kwargs: Keyword arguments for the task

    Returns:
        bool: True if the task was queued, False otherwise

    Example:
        from jobboard.tasks.email_tasks import send_welcome_email_task
        queue_task_safely(
            send_welcome_email_task,
            to_email='user@example.com',
            user_name='Jane Doe',
            url='https://example.com/me',
        )
    """
    future = _executor.submit(_queue_task_sync, task, args, kwargs)
    try:
        task_id, error = future.result(timeout=QUEUE_TIMEOUT_SECONDS)
    except FutureTimeoutError:
        task_id, error = None, f"broker did not answer within {QUEUE_TIMEOUT_SECONDS}s"

    if task_id:
        logger.info(f"Task {task.name} queued successfully: {task_id}")
        return True

    logger.error(f"Failed to queue task {task.name}: {error}")
    return False
