"""
Utility functions and decorators for the tracking service
"""
from functools import wraps
import ipaddress
from urllib.parse import urlsplit

from rest_framework.response import Response
from rest_framework import status
import logging

from .conf import get_tracking_config

logger = logging.getLogger(__name__)

# Matches the ip_address columns of OpenEvent and ClickEvent
IP_ADDRESS_MAX_LENGTH = 64


def _netloc(value):
    """'https://app.example.com/x' and 'app.example.com' both give 'app.example.com'"""
    value = (value or '').strip().lower()
    if not value:
        return ''
    if '//' not in value:
        value = f'//{value}'
    return urlsplit(value).netloc


def is_allowed_origin(request, allowed_origins):
    """
    True if the request's Origin, Host or Referer matches one of the allowed
    origins. An empty allow-list lets everything through.
    """
    if not allowed_origins:
        return True

    allowed = {_netloc(origin) for origin in allowed_origins}
    candidates = (
        request.META.get('HTTP_ORIGIN'),
        request.META.get('HTTP_HOST'),
        request.META.get('HTTP_REFERER'),
    )
    return any(_netloc(candidate) in allowed for candidate in candidates if candidate)


def restrict_to_allowed_origins(view_func):
    """
    Decorator limiting dashboard endpoints to TRACKING_ALLOWED_ORIGINS

    Tracking endpoints (pixel/click) are called from inside emails and must
    never use this.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        config = get_tracking_config()

        if not is_allowed_origin(request, config.allowed_origins):
            logger.warning(f"Blocked dashboard request from {get_client_ip(request)} to {request.path}")
            return Response(
                {
                    'error': 'Access forbidden',
                    'message': 'This service is only accessible from the authorized domain'
                },
                status=status.HTTP_403_FORBIDDEN
            )

        return view_func(request, *args, **kwargs)

    return wrapper


def get_client_ip(request):
    """
    Get the client's IP address from request

    Args:
        request: Django request object

    Returns:
        IP address as string ('' if unknown). A forwarded value that is not
        a valid address falls back to REMOTE_ADDR.
    """
    # Check for X-Forwarded-For header (proxy/load balancer)
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = _valid_ip(x_forwarded_for.split(',')[0])
        if ip:
            return ip

    return _valid_ip(request.META.get('REMOTE_ADDR'))


def _valid_ip(value):
    """The address if it parses and fits the ip_address column, else ''"""
    value = (value or '').strip()
    if not value or len(value) > IP_ADDRESS_MAX_LENGTH:
        return ''
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return ''
    return value
