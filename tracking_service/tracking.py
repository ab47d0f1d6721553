"""
Email Tracking HTML
Rewrites outbound HTML for open tracking (pixel) and click tracking
(signed redirect links). Nothing in here touches the network or the store.
"""
import base64
import re
import struct
import zlib
from collections import namedtuple

from bs4 import BeautifulSoup

from .links import generate_message_id, get_link_encoder
import logging

logger = logging.getLogger(__name__)

TrackedEmail = namedtuple('TrackedEmail', ['html', 'message_id', 'links'])

LINK_PLACEHOLDER = '{{{{link{index}}}}}'
PLACEHOLDER_RE = re.compile(r'\{\{link(\d+)\}\}')

SKIPPED_SCHEMES = ('mailto:', 'tel:', '#')


def link_placeholder(index):
    """Placeholder token for link N, e.g. {{link0}}"""
    return LINK_PLACEHOLDER.format(index=index)


class HtmlRewriter:
    """
    Turns an HTML template plus an ordered list of destination URLs into
    trackable HTML
    """

    def __init__(self, encoder=None):
        self.encoder = encoder or get_link_encoder()

    def pixel_tag(self, message_id):
        pixel_url = self.encoder.pixel_url(message_id)
        return (
            f'<img src="{pixel_url}" width="1" height="1" '
            f'style="display:block;width:1px;height:1px;border:0;max-height:1px;max-width:1px" alt="" />'
        )

    def rewrite(self, html_body, links, message_id=None):
        """
        Substitute {{linkN}} placeholders with signed click URLs and append
        the tracking pixel

        Args:
            html_body: HTML template with {{link0}}, {{link1}}, ... placeholders
            links: Destination URLs, index = position (None keeps the
                placeholder at that position untouched)
            message_id: Existing message ID (a new one is generated if omitted)

        Returns:
            TrackedEmail(html, message_id, links) where links is {index: url}
        """
        message_id = message_id or generate_message_id()
        links_map = {index: url for index, url in enumerate(links or []) if url}

        html = html_body or '<p>Open this message.</p>'
        for index in links_map:
            html = html.replace(link_placeholder(index), self.encoder.click_url(message_id, index))

        html += '\n' + self.pixel_tag(message_id)

        logger.debug(f"Rewrote HTML for message {message_id} with {len(links_map)} tracked links")

        return TrackedEmail(html=html, message_id=message_id, links=links_map)

    def build_snippet(self, message_id):
        """Copy-paste tracking snippet for a manually sent campaign"""
        return (
            '<!-- Email Tracking -->\n'
            f'{self.pixel_tag(message_id)}\n'
            '<!-- End Email Tracking -->'
        )

    @staticmethod
    def extract_links(html_body):
        """
        Replace the href of every trackable <a> with a positional placeholder

        Indices are assigned in document order, after the highest {{linkN}}
        the author already wrote; mailto:, tel:, fragment and already-tracked
        links are left alone. Positions owned by existing placeholders are
        None in the returned list.

        Args:
            html_body: Author HTML with ordinary links

        Returns:
            (template_html, links) tuple
        """
        soup = BeautifulSoup(html_body, 'html.parser')
        existing = [int(index) for index in PLACEHOLDER_RE.findall(html_body or '')]
        links = [None] * (max(existing) + 1 if existing else 0)

        for anchor in soup.find_all('a', href=True):
            original_url = anchor['href'].strip()

            if not original_url or original_url.startswith(SKIPPED_SCHEMES):
                continue

            # Skip links that are already placeholders or tracking redirects
            if original_url.startswith('{{') or '/click?m=' in original_url:
                continue

            anchor['href'] = link_placeholder(len(links))
            links.append(original_url)

        logger.debug(f"Extracted {sum(1 for url in links if url)} links from HTML body")

        return str(soup), links


def _png_chunk(chunk_type, data):
    return (
        struct.pack('>I', len(data)) + chunk_type + data
        + struct.pack('>I', zlib.crc32(chunk_type + data) & 0xffffffff)
    )


def _transparent_png():
    """1x1 RGBA PNG whose only pixel has alpha 0"""
    # width, height, bit depth 8, color type 6 (RGBA), deflate, no filter, no interlace
    header = struct.pack('>IIBBBBB', 1, 1, 8, 6, 0, 0, 0)
    # One scanline: filter byte 0, then R G B A all zero
    pixels = zlib.compress(b'\x00\x00\x00\x00\x00')
    return (
        b'\x89PNG\r\n\x1a\n'
        + _png_chunk(b'IHDR', header)
        + _png_chunk(b'IDAT', pixels)
        + _png_chunk(b'IEND', b'')
    )


class TrackingPixelGenerator:
    """
    The fixed 1x1 transparent images served by the pixel endpoint
    """

    TRANSPARENT_GIF = base64.b64decode('R0lGODlhAQABAPAAAP///wAAACH5BAEAAAAALAAAAAABAAEAAAICRAEAOw==')

    TRANSPARENT_PNG = _transparent_png()

    PIXELS = {
        'gif': (TRANSPARENT_GIF, 'image/gif'),
        'png': (TRANSPARENT_PNG, 'image/png'),
    }

    @staticmethod
    def get_pixel(pixel_format='gif'):
        """
        Get the 1x1 transparent image as bytes

        Returns:
            Bytes of the image
        """
        return TrackingPixelGenerator.PIXELS[pixel_format][0]

    @staticmethod
    def get_pixel_headers(pixel_format='gif'):
        """
        Get HTTP headers for serving tracking pixel

        Returns:
            Dict of headers
        """
        return {
            'Content-Type': TrackingPixelGenerator.PIXELS[pixel_format][1],
            'Cache-Control': 'no-cache, no-store, must-revalidate, max-age=0',
            'Pragma': 'no-cache',
            'Expires': '0'
        }
