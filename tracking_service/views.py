"""
Views for the tracking service
Public tracking endpoints (pixel, click) and the dashboard API
"""
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from django.core.exceptions import DisallowedRedirect
from django.http import HttpResponse, HttpResponseRedirect
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET
from drf_spectacular.utils import extend_schema, OpenApiExample, OpenApiResponse
import logging
import uuid

from .conf import get_tracking_config
from .campaigns import create_manual_campaign, create_tracked_message
from .links import get_link_encoder, parse_link_index, resolve_link
from .serializers import (
    CampaignDetailSerializer,
    SnippetRequestSerializer,
    SnippetResponseSerializer,
    StatsResponseSerializer,
    TrackedMessageRequestSerializer,
    TrackedMessageResponseSerializer,
)
from .stats import campaign_detail, campaign_stats
from .store import MESSAGES, EventStoreError, EventStoreTimeout, get_event_store, message_links
from .tasks import fire_and_forget, record_click, record_open
from .tracking import TrackingPixelGenerator
from .utils import get_client_ip, restrict_to_allowed_origins

logger = logging.getLogger(__name__)

INVALID_LINK_TEXT = 'Invalid tracking link'


def _text_response(body, status_code):
    return HttpResponse(body, status=status_code, content_type='text/plain; charset=utf-8')


# ============================================
# TRACKING ENDPOINTS
# ============================================
# Plain Django views: mail clients send arbitrary Accept headers and must
# never get a content-negotiation error instead of the image.

@csrf_exempt
@require_GET
def track_pixel(request):
    """Record an email open and return the 1x1 pixel"""
    config = get_tracking_config()
    message_id = request.GET.get('m')
    signature = request.GET.get('sig')

    # Missing parameters and bad signatures look exactly the same
    if not message_id or not signature or not get_link_encoder(config).verify_pixel(message_id, signature):
        logger.warning(f"Rejected pixel request from {get_client_ip(request)}")
        return HttpResponse(status=400)

    fire_and_forget(record_open, {
        'id': str(uuid.uuid4()),
        'message_id': message_id,
        'opened_at': timezone.now().isoformat(),
        'ip_address': get_client_ip(request),
        'user_agent': request.META.get('HTTP_USER_AGENT', ''),
        'referer': request.META.get('HTTP_REFERER', ''),
    })

    pixel_data = TrackingPixelGenerator.get_pixel(config.pixel_format)
    headers = TrackingPixelGenerator.get_pixel_headers(config.pixel_format)

    response = HttpResponse(pixel_data, content_type=headers['Content-Type'])
    response['Cache-Control'] = headers['Cache-Control']
    response['Pragma'] = headers['Pragma']
    response['Expires'] = headers['Expires']

    return response


@csrf_exempt
@require_GET
def track_click(request):
    """Record an email click and redirect to the link's destination"""
    config = get_tracking_config()
    message_id = request.GET.get('m')
    raw_index = request.GET.get('l')
    signature = request.GET.get('sig')

    if not message_id or not raw_index or not signature:
        return _text_response(INVALID_LINK_TEXT, 400)

    link_index = parse_link_index(raw_index)
    if link_index is None or not get_link_encoder(config).verify_click(message_id, raw_index, signature):
        logger.warning(f"Rejected click request from {get_client_ip(request)}")
        return _text_response(INVALID_LINK_TEXT, 400)

    try:
        message = get_event_store().select_by_key(
            MESSAGES, 'id', message_id, timeout=config.lookup_timeout
        )
    except EventStoreTimeout as e:
        logger.warning(f"Message lookup timed out for {message_id}: {e}")
        message = None
    except EventStoreError as e:
        logger.error(f"Click tracking error for message {message_id}: {e}")
        return _text_response('Server error', 500)

    if not message:
        logger.warning(f"Click for unknown message {message_id}")
        return _text_response('Message not found', 404)

    destination_url = resolve_link(message_links(message), link_index, config.default_redirect_url)

    try:
        response = HttpResponseRedirect(destination_url)
    except DisallowedRedirect as e:
        logger.error(f"Refusing redirect for message {message_id} link {link_index}: {e}")
        return _text_response('Server error', 500)

    fire_and_forget(record_click, {
        'id': str(uuid.uuid4()),
        'message_id': message_id,
        'link_index': link_index,
        'url': destination_url,
        'clicked_at': timezone.now().isoformat(),
        'ip_address': get_client_ip(request),
        'user_agent': request.META.get('HTTP_USER_AGENT', ''),
    })

    return response


# ============================================
# SNIPPET / MESSAGE GENERATION
# ============================================

@extend_schema(
    tags=['Generation'],
    summary='Generate Tracking Snippet',
    description='Create a message for a manually sent campaign and return the pixel snippet to paste into the email HTML.',
    request=SnippetRequestSerializer,
    responses={
        200: SnippetResponseSerializer,
        500: OpenApiResponse(description='Message could not be saved'),
    },
    examples=[
        OpenApiExample(
            'Snippet Request',
            value={'campaign_name': 'October Newsletter'}
        )
    ]
)
@api_view(['POST'])
@permission_classes([AllowAny])
@restrict_to_allowed_origins
def generate_snippet(request):
    """Generate a tracking snippet for a new campaign"""
    serializer = SnippetRequestSerializer(data=request.data)

    if not serializer.is_valid():
        return Response(
            {'success': False, 'error': 'Invalid request data', 'details': serializer.errors},
            status=status.HTTP_400_BAD_REQUEST
        )

    campaign_name = serializer.validated_data['campaign_name']

    try:
        message_id, snippet = create_manual_campaign(campaign_name)
    except EventStoreError as e:
        logger.error(f"Error saving snippet message: {e}")
        return Response(
            {'success': False, 'error': 'Failed to save campaign'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return Response({
        'success': True,
        'snippet': snippet,
        'message_id': message_id,
        'campaign_name': campaign_name,
    }, status=status.HTTP_200_OK)


@extend_schema(
    tags=['Generation'],
    summary='Prepare Tracked Message',
    description=(
        'Rewrite an email body for tracking. Use {{link0}}, {{link1}}, ... placeholders together with '
        '"links", or omit "links" to have every <a href> in the body tracked in document order.'
    ),
    request=TrackedMessageRequestSerializer,
    responses={
        201: TrackedMessageResponseSerializer,
        400: OpenApiResponse(description='Invalid request data'),
        500: OpenApiResponse(description='Message could not be saved'),
    },
    examples=[
        OpenApiExample(
            'Placeholder Body',
            value={
                'subject': 'Product launch',
                'to_email': 'jane@company.com',
                'html_body': '<p>Hello! Click <a href="{{link0}}">this link</a>.</p>',
                'links': ['https://example.com/launch']
            }
        )
    ]
)
@api_view(['POST'])
@permission_classes([AllowAny])
@restrict_to_allowed_origins
def prepare_tracked_message(request):
    """Rewrite an HTML body with tracking and save the message"""
    serializer = TrackedMessageRequestSerializer(data=request.data)

    if not serializer.is_valid():
        return Response(
            {'success': False, 'error': 'Invalid request data', 'details': serializer.errors},
            status=status.HTTP_400_BAD_REQUEST
        )

    data = serializer.validated_data

    try:
        tracked = create_tracked_message(
            subject=data['subject'],
            html_body=data['html_body'],
            links=data.get('links'),
            to_email=data.get('to_email', ''),
        )
    except EventStoreError as e:
        logger.error(f"Error saving tracked message: {e}")
        return Response(
            {'success': False, 'error': 'Failed to save message'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return Response({
        'success': True,
        'message_id': tracked.message_id,
        'html': tracked.html,
        'links': tracked.links,
    }, status=status.HTTP_201_CREATED)


# ============================================
# STATISTICS
# ============================================

@extend_schema(
    tags=['Statistics'],
    summary='Campaign Statistics',
    description='Open and click counts for every message, most recently sent first.',
    responses={200: StatsResponseSerializer}
)
@api_view(['GET'])
@permission_classes([AllowAny])
@restrict_to_allowed_origins
def get_stats(request):
    """Per-campaign open/click statistics"""
    try:
        stats = campaign_stats(get_event_store())
    except EventStoreError as e:
        logger.error(f"Error computing stats: {e}")
        return Response({
            'error': 'Failed to load statistics',
            'total_campaigns': 0,
            'total_opens': 0,
            'total_clicks': 0,
            'campaigns': [],
        }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.info(f"Stats computed for {stats['total_campaigns']} campaigns")

    return Response(StatsResponseSerializer(stats).data, status=status.HTTP_200_OK)


@extend_schema(
    tags=['Statistics'],
    summary='Campaign Details',
    description='One message with its open and click events, newest first.',
    responses={
        200: CampaignDetailSerializer,
        404: OpenApiResponse(description='Campaign not found'),
    }
)
@api_view(['GET'])
@permission_classes([AllowAny])
@restrict_to_allowed_origins
def get_campaign(request, message_id):
    """Details for one campaign"""
    try:
        detail = campaign_detail(get_event_store(), message_id)
    except EventStoreError as e:
        logger.error(f"Error loading campaign {message_id}: {e}")
        return Response(
            {'error': 'Failed to load campaign'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if detail is None:
        return Response({'error': 'Campaign not found'}, status=status.HTTP_404_NOT_FOUND)

    return Response(CampaignDetailSerializer(detail).data, status=status.HTTP_200_OK)


# ============================================
# UTILITY ENDPOINTS
# ============================================

@extend_schema(
    tags=['Utility'],
    summary='Health Check',
    description='Check that the service is up and the event store is reachable.',
    responses={
        200: OpenApiResponse(description='Service is healthy'),
        503: OpenApiResponse(description='Event store unreachable'),
    }
)
@api_view(['GET'])
@permission_classes([AllowAny])
def health_check(request):
    """Health check endpoint"""
    try:
        get_event_store().ping()
    except EventStoreError as e:
        return Response({
            'status': 'unhealthy',
            'database': 'error',
            'error': str(e)
        }, status=status.HTTP_503_SERVICE_UNAVAILABLE)

    return Response({
        'status': 'healthy',
        'database': 'connected',
        'timestamp': timezone.now().isoformat(),
        'service': 'TrackStats API'
    }, status=status.HTTP_200_OK)


@extend_schema(
    tags=['Utility'],
    summary='Service Index',
    description='Lists the public endpoints.'
)
@api_view(['GET'])
@permission_classes([AllowAny])
def service_index(request):
    """Service descriptor"""
    return Response({
        'service': 'TrackStats API',
        'endpoints': {
            'health': '/health',
            'stats': '/api/stats',
            'pixel': '/pixel?m=MESSAGE_ID&sig=SIGNATURE',
            'click': '/click?m=MESSAGE_ID&l=LINK_INDEX&sig=SIGNATURE',
        },
        'status': 'operational'
    })
