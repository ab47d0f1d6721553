"""
Django models backing the default event store
Tables: messages, opens, clicks
"""
from django.db import models
import uuid
from django.utils import timezone

from .links import generate_message_id


class Message(models.Model):
    """
    One tracked email send (or manual snippet campaign)
    Table: messages
    """
    id = models.CharField(primary_key=True, max_length=64, default=generate_message_id, editable=False)

    to_email = models.CharField(max_length=255, blank=True, default='')
    subject = models.TextField(blank=True, default='')

    # {"0": "https://...", "1": "https://..."} - JSON keys are always strings
    links = models.JSONField(default=dict, blank=True)

    sent_at = models.DateTimeField(default=timezone.now, db_index=True)

    # Free-form data, e.g. {"campaign": "...", "manual": true}
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = 'messages'
        ordering = ['-sent_at']

    def __str__(self):
        return f"{self.subject or 'Unnamed Campaign'} ({self.id})"


class OpenEvent(models.Model):
    """
    One verified pixel request. message_id is a plain reference: the message
    row may not exist (yet).
    Table: opens
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    message_id = models.CharField(max_length=64, db_index=True)

    opened_at = models.DateTimeField(default=timezone.now, db_index=True)

    ip_address = models.CharField(max_length=64, blank=True, default='')
    user_agent = models.TextField(blank=True, default='')
    referer = models.TextField(blank=True, default='')

    class Meta:
        db_table = 'opens'
        ordering = ['-opened_at']
        indexes = [
            models.Index(fields=['message_id', 'opened_at'], name='opens_message_opened_idx'),
        ]

    def __str__(self):
        return f"OPEN - {self.message_id} - {self.opened_at}"


class ClickEvent(models.Model):
    """
    One verified click that resolved to a destination
    Table: clicks
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    message_id = models.CharField(max_length=64, db_index=True)

    link_index = models.PositiveIntegerField()
    url = models.TextField()

    clicked_at = models.DateTimeField(default=timezone.now, db_index=True)

    ip_address = models.CharField(max_length=64, blank=True, default='')
    user_agent = models.TextField(blank=True, default='')

    class Meta:
        db_table = 'clicks'
        ordering = ['-clicked_at']
        indexes = [
            models.Index(fields=['message_id', 'clicked_at'], name='clicks_message_clicked_idx'),
        ]

    def __str__(self):
        return f"CLICK - {self.message_id} [{self.link_index}] - {self.url[:50]}"
