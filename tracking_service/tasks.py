"""
Celery tasks for the tracking service
Event writes run here, detached from the pixel/click responses
"""
from celery import shared_task
import logging

from .store import CLICKS, OPENS, EventStoreError, get_event_store

logger = logging.getLogger(__name__)


@shared_task(ignore_result=True)
def record_open(event):
    """
    Store one Open event

    Args:
        event: Open record built by the pixel view (id, message_id,
            opened_at, ip_address, user_agent, referer)
    """
    try:
        get_event_store().insert(OPENS, event)
        logger.info(f"Recorded open for message {event['message_id']}")
    except EventStoreError as e:
        logger.error(f"Error recording open for message {event.get('message_id')}: {e}")


@shared_task(ignore_result=True)
def record_click(event):
    """
    Store one Click event

    Args:
        event: Click record built by the click view (id, message_id,
            link_index, url, clicked_at, ip_address, user_agent)
    """
    try:
        get_event_store().insert(CLICKS, event)
        logger.info(f"Recorded click on link {event['link_index']} for message {event['message_id']}")
    except EventStoreError as e:
        logger.error(f"Error recording click for message {event.get('message_id')}: {e}")


def fire_and_forget(task, event):
    """
    Queue a task without letting anything about it reach the caller.

    A broker outage or a failing eager run is logged and dropped; the HTTP
    response that triggered it goes out regardless.
    """
    try:
        task.apply_async(args=[event], retry=False)
    except Exception as e:
        logger.error(f"Could not queue {task.name} for message {event.get('message_id')}: {e}")
