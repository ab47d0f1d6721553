"""
Campaign statistics built from stored messages and events
"""
import logging

from .store import CLICKS, MESSAGES, OPENS

logger = logging.getLogger(__name__)

UNNAMED_CAMPAIGN = 'Unnamed Campaign'


def format_open_rate(open_count):
    # Count-based (opens * 100), not opens / sent
    return f"{open_count * 100:.1f}%"


def compute_stats(messages, store):
    """
    Aggregate open/click counts per message

    Args:
        messages: Message records, already in the order to display
        store: EventStore used for the per-message counts

    Returns:
        Dict with total_campaigns, total_opens, total_clicks and campaigns
    """
    campaigns = []

    for message in messages or []:
        message_id = message['id']
        open_count = store.count(OPENS, {'message_id': message_id}) or 0
        click_count = store.count(CLICKS, {'message_id': message_id}) or 0

        campaigns.append({
            'message_id': message_id,
            'subject': message.get('subject') or UNNAMED_CAMPAIGN,
            'sent_at': message.get('sent_at'),
            'open_count': open_count,
            'click_count': click_count,
            'open_rate': format_open_rate(open_count),
        })

    return {
        'total_campaigns': len(campaigns),
        'total_opens': sum(c['open_count'] for c in campaigns),
        'total_clicks': sum(c['click_count'] for c in campaigns),
        'campaigns': campaigns,
    }


def campaign_stats(store):
    """Stats for every message, most recently sent first"""
    messages = store.select_all(MESSAGES, order='-sent_at')
    logger.debug(f"Computing stats for {len(messages)} messages")
    return compute_stats(messages, store)


def campaign_detail(store, message_id):
    """
    One message with its opens and clicks (newest first)

    Returns:
        Dict with campaign, opens, clicks, or None if the message is unknown
    """
    message = store.select_by_key(MESSAGES, 'id', message_id)
    if not message:
        return None

    return {
        'campaign': message,
        'opens': store.select_all(OPENS, {'message_id': message_id}, order='-opened_at'),
        'clicks': store.select_all(CLICKS, {'message_id': message_id}, order='-clicked_at'),
    }
