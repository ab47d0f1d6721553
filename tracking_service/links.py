"""
Canonical strings and public URLs for tracking links

The canonical strings are what gets signed. Changing their format
invalidates every link that has already been sent.
"""
import uuid

from .conf import get_tracking_config
from .signing import Signer


def generate_message_id():
    """Generate a new message ID (UUID4, safe to embed unquoted in a query string)"""
    return str(uuid.uuid4())


def pixel_canonical(message_id):
    return f"m={message_id}"


def click_canonical(message_id, link_index):
    # The pipe keeps l=1 and l=10 (and the pixel string) from colliding
    return f"m={message_id}|l={link_index}"


class LinkEncoder:
    """Builds signed pixel and click URLs under a base URL"""

    def __init__(self, base_url, signer):
        self.base_url = base_url.rstrip('/')
        self.signer = signer

    def pixel_url(self, message_id):
        sig = self.signer.sign(pixel_canonical(message_id))
        return f"{self.base_url}/pixel?m={message_id}&sig={sig}"

    def click_url(self, message_id, link_index):
        sig = self.signer.sign(click_canonical(message_id, link_index))
        return f"{self.base_url}/click?m={message_id}&l={link_index}&sig={sig}"

    def verify_pixel(self, message_id, signature):
        return self.signer.verify(pixel_canonical(message_id), signature)

    def verify_click(self, message_id, link_index, signature):
        return self.signer.verify(click_canonical(message_id, link_index), signature)


def get_link_encoder(config=None):
    """LinkEncoder wired to the process configuration"""
    config = config or get_tracking_config()
    return LinkEncoder(config.base_url, Signer(config.secret))


def parse_link_index(value):
    """Link index from the query string, or None if it is not a non-negative integer"""
    if not value or not value.isascii() or not value.isdigit():
        return None
    return int(value)


def resolve_link(links, link_index, default):
    """
    Destination for a link index.

    The mapping may have been serialized with string keys (JSON) or int keys,
    so the index is tried both ways. Unknown indices fall back to default.
    """
    if isinstance(links, (list, tuple)):
        if 0 <= int(link_index) < len(links) and links[int(link_index)]:
            return links[int(link_index)]
        return default

    links = links or {}
    return links.get(str(link_index)) or links.get(int(link_index)) or default
