"""
Creating tracked messages
Shared by the API views and the generate_snippet management command
"""
from django.utils import timezone
import logging

from .links import generate_message_id
from .store import MESSAGES, get_event_store
from .tracking import HtmlRewriter

logger = logging.getLogger(__name__)

DEFAULT_CAMPAIGN = 'Manual Campaign'


def create_manual_campaign(campaign_name=None, store=None):
    """
    Save a message for a manually sent campaign and build its pixel snippet

    Args:
        campaign_name: Name shown in the stats (default: Manual Campaign)
        store: EventStore to use (default: the configured one)

    Returns:
        (message_id, snippet) tuple

    Raises:
        EventStoreError: if the message could not be saved
    """
    campaign_name = (campaign_name or '').strip() or DEFAULT_CAMPAIGN
    store = store or get_event_store()
    message_id = generate_message_id()

    store.insert(MESSAGES, {
        'id': message_id,
        'subject': campaign_name,
        'sent_at': timezone.now(),
        'links': {},
        'metadata': {'campaign': campaign_name, 'manual': True},
    })

    logger.info(f"Created manual campaign '{campaign_name}' ({message_id})")

    return message_id, HtmlRewriter().build_snippet(message_id)


def create_tracked_message(subject, html_body, links=None, to_email='', store=None):
    """
    Rewrite an email body for tracking and save the message

    If links is None, every trackable <a href> in html_body is replaced by a
    placeholder first and the original targets become the link list.

    Returns:
        TrackedEmail with links as {"0": url, ...}
    """
    store = store or get_event_store()

    if links is None:
        html_body, links = HtmlRewriter.extract_links(html_body)

    tracked = HtmlRewriter().rewrite(html_body, links)
    links_map = {str(index): url for index, url in tracked.links.items()}

    store.insert(MESSAGES, {
        'id': tracked.message_id,
        'to_email': to_email or '',
        'subject': subject,
        'sent_at': timezone.now(),
        'links': links_map,
        'metadata': {},
    })

    logger.info(f"Prepared tracked message {tracked.message_id} with {len(links_map)} links")

    return tracked._replace(links=links_map)
