"""
Django REST Framework serializers for the tracking API
"""
from rest_framework import serializers
from .models import Message, OpenEvent, ClickEvent


class MessageSerializer(serializers.ModelSerializer):
    """Serializer for tracked messages"""

    class Meta:
        model = Message
        fields = ['id', 'to_email', 'subject', 'links', 'sent_at', 'metadata']
        read_only_fields = ['id', 'sent_at']


class OpenEventSerializer(serializers.ModelSerializer):
    """Serializer for open events"""

    class Meta:
        model = OpenEvent
        fields = ['id', 'message_id', 'opened_at', 'ip_address', 'user_agent', 'referer']
        read_only_fields = fields


class ClickEventSerializer(serializers.ModelSerializer):
    """Serializer for click events"""

    class Meta:
        model = ClickEvent
        fields = ['id', 'message_id', 'link_index', 'url', 'clicked_at', 'ip_address', 'user_agent']
        read_only_fields = fields


# ============================================
# SNIPPET / MESSAGE GENERATION
# ============================================

class SnippetRequestSerializer(serializers.Serializer):
    """
    Serializer for tracking snippet generation request
    Older dashboard clients send campaignName instead of campaign_name.
    """
    campaign_name = serializers.CharField(
        required=False, allow_blank=True, max_length=255, default='Manual Campaign'
    )

    def to_internal_value(self, data):
        if isinstance(data, dict) and 'campaign_name' not in data and 'campaignName' in data:
            data = {'campaign_name': data['campaignName']}
        return super().to_internal_value(data)

    def validate_campaign_name(self, value):
        return value.strip() or 'Manual Campaign'


class SnippetResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    snippet = serializers.CharField()
    message_id = serializers.CharField()
    campaign_name = serializers.CharField()


class TrackedMessageRequestSerializer(serializers.Serializer):
    """
    Serializer for preparing a tracked message.
    If links is omitted, the <a href> targets in html_body are used.
    """
    subject = serializers.CharField(required=True, max_length=255)
    to_email = serializers.EmailField(required=False, allow_blank=True, default='')
    html_body = serializers.CharField(required=True)
    links = serializers.ListField(
        child=serializers.URLField(),
        required=False,
        allow_empty=True
    )


class TrackedMessageResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    message_id = serializers.CharField()
    html = serializers.CharField()
    links = serializers.DictField(child=serializers.CharField())


# ============================================
# STATISTICS
# ============================================

class CampaignStatSerializer(serializers.Serializer):
    """Per-message open/click counts"""
    message_id = serializers.CharField()
    subject = serializers.CharField()
    sent_at = serializers.DateTimeField(allow_null=True)
    open_count = serializers.IntegerField()
    click_count = serializers.IntegerField()
    open_rate = serializers.CharField()


class StatsResponseSerializer(serializers.Serializer):
    total_campaigns = serializers.IntegerField()
    total_opens = serializers.IntegerField()
    total_clicks = serializers.IntegerField()
    campaigns = CampaignStatSerializer(many=True)


class CampaignDetailSerializer(serializers.Serializer):
    """A message with its raw open and click rows"""
    campaign = MessageSerializer()
    opens = OpenEventSerializer(many=True)
    clicks = ClickEventSerializer(many=True)
