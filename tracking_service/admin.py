from django.contrib import admin
from .models import Message, OpenEvent, ClickEvent


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'subject', 'to_email', 'sent_at')
    list_filter = ('sent_at',)
    search_fields = ('id', 'subject', 'to_email')
    ordering = ('-sent_at',)
    readonly_fields = ('id',)


@admin.register(OpenEvent)
class OpenEventAdmin(admin.ModelAdmin):
    list_display = ('message_id', 'opened_at', 'ip_address', 'user_agent_short')
    list_filter = ('opened_at',)
    search_fields = ('message_id', 'ip_address')
    ordering = ('-opened_at',)
    readonly_fields = ('id', 'message_id', 'opened_at', 'ip_address', 'user_agent', 'referer')

    def user_agent_short(self, obj):
        return obj.user_agent[:50] + '...' if len(obj.user_agent) > 50 else obj.user_agent
    user_agent_short.short_description = 'User Agent'


@admin.register(ClickEvent)
class ClickEventAdmin(admin.ModelAdmin):
    list_display = ('message_id', 'link_index', 'url_short', 'clicked_at', 'ip_address')
    list_filter = ('clicked_at',)
    search_fields = ('message_id', 'url', 'ip_address')
    ordering = ('-clicked_at',)
    readonly_fields = ('id', 'message_id', 'link_index', 'url', 'clicked_at', 'ip_address', 'user_agent')

    def url_short(self, obj):
        return obj.url[:50] + '...' if len(obj.url) > 50 else obj.url
    url_short.short_description = 'Destination URL'
