"""
URL routing for tracking_service app
"""
from django.urls import path
from . import views

app_name = 'tracking_service'

urlpatterns = [
    path('', views.service_index, name='index'),

    # Tracking endpoints (embedded in emails, always public)
    # /pixel.gif and /pixel.png are served by the same view
    path('pixel', views.track_pixel, name='track_pixel'),
    path('pixel.gif', views.track_pixel, name='track_pixel'),
    path('pixel.png', views.track_pixel, name='track_pixel'),
    path('click', views.track_click, name='track_click'),

    # Generation endpoints
    path('api/generate-snippet', views.generate_snippet, name='generate_snippet'),
    path('api/messages', views.prepare_tracked_message, name='prepare_tracked_message'),

    # Statistics endpoints
    path('api/stats', views.get_stats, name='stats'),
    path('api/campaign/<str:message_id>', views.get_campaign, name='campaign_detail'),

    # Utility endpoints
    path('health', views.health_check, name='health_check'),
]
