import struct
import zlib

from django.test import SimpleTestCase, override_settings

from tracking_service.conf import TrackingConfig, get_tracking_config
from tracking_service.links import (
    LinkEncoder,
    click_canonical,
    generate_message_id,
    parse_link_index,
    pixel_canonical,
    resolve_link,
)
from tracking_service.signing import Signer
from tracking_service.tracking import HtmlRewriter, TrackingPixelGenerator, link_placeholder


class LinkEncoderTests(SimpleTestCase):
    def setUp(self):
        self.signer = Signer('test-secret')
        self.encoder = LinkEncoder('https://track.example.com/', self.signer)

    def test_canonical_strings(self):
        self.assertEqual(pixel_canonical('abc'), 'm=abc')
        self.assertEqual(click_canonical('abc', 3), 'm=abc|l=3')

    def test_pixel_url(self):
        sig = self.signer.sign('m=abc')
        self.assertEqual(
            self.encoder.pixel_url('abc'),
            f'https://track.example.com/pixel?m=abc&sig={sig}'
        )

    def test_click_url(self):
        sig = self.signer.sign('m=abc|l=2')
        self.assertEqual(
            self.encoder.click_url('abc', 2),
            f'https://track.example.com/click?m=abc&l=2&sig={sig}'
        )

    def test_pixel_and_click_signatures_are_not_interchangeable(self):
        pixel_sig = self.signer.sign(pixel_canonical('abc'))
        self.assertFalse(self.encoder.verify_click('abc', '0', pixel_sig))

        click_sig = self.signer.sign(click_canonical('abc', 0))
        self.assertFalse(self.encoder.verify_pixel('abc', click_sig))

    def test_link_indices_do_not_collide(self):
        sig = self.signer.sign(click_canonical('abc', 1))
        self.assertTrue(self.encoder.verify_click('abc', '1', sig))
        self.assertFalse(self.encoder.verify_click('abc', '10', sig))

    def test_generated_message_ids_are_unique(self):
        ids = {generate_message_id() for _ in range(100)}
        self.assertEqual(len(ids), 100)


class LinkIndexTests(SimpleTestCase):
    def test_parse_link_index(self):
        self.assertEqual(parse_link_index('0'), 0)
        self.assertEqual(parse_link_index('12'), 12)
        for bad in ('', None, '-1', '1.5', 'abc', ' 1', '١'):
            with self.subTest(value=bad):
                self.assertIsNone(parse_link_index(bad))

    def test_resolve_link_with_string_and_int_keys(self):
        self.assertEqual(resolve_link({'0': 'https://a.example'}, 0, 'https://default'), 'https://a.example')
        self.assertEqual(resolve_link({1: 'https://b.example'}, 1, 'https://default'), 'https://b.example')

    def test_resolve_link_with_list(self):
        links = ['https://a.example', 'https://b.example']
        self.assertEqual(resolve_link(links, 1, 'https://default'), 'https://b.example')
        self.assertEqual(resolve_link(links, 2, 'https://default'), 'https://default')

    def test_resolve_link_falls_back_to_default(self):
        self.assertEqual(resolve_link({'0': 'https://a.example'}, 5, 'https://default'), 'https://default')
        self.assertEqual(resolve_link(None, 0, 'https://default'), 'https://default')
        self.assertEqual(resolve_link({'0': ''}, 0, 'https://default'), 'https://default')


class TrackingConfigTests(SimpleTestCase):
    def test_trailing_slash_is_stripped(self):
        config = TrackingConfig(base_url='https://t.example/', secret='s', default_redirect_url='https://t.example')
        self.assertEqual(config.base_url, 'https://t.example')

    def test_empty_secret_is_rejected(self):
        with self.assertRaises(ValueError):
            TrackingConfig(base_url='https://t.example', secret='', default_redirect_url='https://t.example')

    def test_unknown_pixel_format_is_rejected(self):
        with self.assertRaises(ValueError):
            TrackingConfig(
                base_url='https://t.example', secret='s',
                default_redirect_url='https://t.example', pixel_format='jpg'
            )

    def test_config_follows_settings_overrides(self):
        with override_settings(TRACKING_BASE_URL='https://one.example', TRACK_SECRET='one'):
            self.assertEqual(get_tracking_config().base_url, 'https://one.example')
        with override_settings(TRACKING_BASE_URL='https://two.example', TRACK_SECRET='two'):
            self.assertEqual(get_tracking_config().base_url, 'https://two.example')
            self.assertEqual(get_tracking_config().secret, 'two')


class HtmlRewriterTests(SimpleTestCase):
    def setUp(self):
        self.signer = Signer('test-secret')
        self.encoder = LinkEncoder('https://track.example.com', self.signer)
        self.rewriter = HtmlRewriter(self.encoder)

    def test_placeholders_become_signed_click_urls(self):
        html = '<p>Hello! Click <a href="{{link0}}">this link</a> or <a href="{{link1}}">that one</a>.</p>'
        tracked = self.rewriter.rewrite(html, ['https://example.com/a', 'https://example.com/b'], message_id='abc')

        self.assertEqual(tracked.message_id, 'abc')
        self.assertEqual(tracked.links, {0: 'https://example.com/a', 1: 'https://example.com/b'})
        self.assertIn(self.encoder.click_url('abc', 0), tracked.html)
        self.assertIn(self.encoder.click_url('abc', 1), tracked.html)
        self.assertNotIn('{{link', tracked.html)

    def test_pixel_is_appended_once(self):
        tracked = self.rewriter.rewrite('<p>Hi</p>', [], message_id='abc')

        self.assertTrue(tracked.html.startswith('<p>Hi</p>\n'))
        self.assertTrue(tracked.html.endswith(self.rewriter.pixel_tag('abc')))
        self.assertEqual(tracked.html.count('/pixel?m=abc'), 1)
        self.assertIn('width="1" height="1"', tracked.html)

    def test_unmatched_placeholders_are_left_alone(self):
        tracked = self.rewriter.rewrite('<a href="{{link0}}">a</a> <a href="{{link3}}">b</a>', ['https://x.example'], message_id='abc')
        self.assertIn('{{link3}}', tracked.html)
        self.assertNotIn('{{link0}}', tracked.html)

    def test_repeated_placeholder_is_replaced_everywhere(self):
        tracked = self.rewriter.rewrite('{{link0}} {{link0}}', ['https://x.example'], message_id='abc')
        self.assertEqual(tracked.html.count(self.encoder.click_url('abc', 0)), 2)

    def test_empty_body_gets_default_content(self):
        tracked = self.rewriter.rewrite('', [], message_id='abc')
        self.assertTrue(tracked.html.startswith('<p>Open this message.</p>'))

    def test_new_message_id_is_generated(self):
        first = self.rewriter.rewrite('<p>Hi</p>', [])
        second = self.rewriter.rewrite('<p>Hi</p>', [])
        self.assertNotEqual(first.message_id, second.message_id)

    def test_build_snippet(self):
        snippet = self.rewriter.build_snippet('abc')
        self.assertTrue(snippet.startswith('<!-- Email Tracking -->'))
        self.assertTrue(snippet.endswith('<!-- End Email Tracking -->'))
        self.assertIn(self.encoder.pixel_url('abc'), snippet)

    def test_extract_links(self):
        html = (
            '<p><a href="https://example.com/a">A</a>'
            '<a href="mailto:jane@example.com">Mail</a>'
            '<a href="#top">Top</a>'
            '<a href=" https://example.com/b ">B</a></p>'
        )
        template, links = HtmlRewriter.extract_links(html)

        self.assertEqual(links, ['https://example.com/a', 'https://example.com/b'])
        self.assertIn(f'href="{link_placeholder(0)}"', template)
        self.assertIn(f'href="{link_placeholder(1)}"', template)
        self.assertIn('mailto:jane@example.com', template)
        self.assertIn('#top', template)

    def test_extract_links_skips_tracked_links(self):
        tracked_href = self.encoder.click_url('abc', 0)
        html = f'<a href="{{{{link0}}}}">A</a><a href="{tracked_href}">B</a>'
        _, links = HtmlRewriter.extract_links(html)
        self.assertEqual(links, [None])

    def test_extract_links_numbers_after_existing_placeholders(self):
        html = '<a href="{{link0}}">Author</a> <a href="https://example.com/new">New</a>'

        template, links = HtmlRewriter.extract_links(html)

        self.assertEqual(links, [None, 'https://example.com/new'])
        self.assertIn('href="{{link0}}"', template)
        self.assertIn('href="{{link1}}"', template)

        tracked = self.rewriter.rewrite(template, links, message_id='abc')
        self.assertEqual(tracked.links, {1: 'https://example.com/new'})
        self.assertIn(self.encoder.click_url('abc', 1), tracked.html)
        self.assertNotIn(self.encoder.click_url('abc', 0), tracked.html)


def _png_chunks(data):
    """[(type, payload)] of a PNG, checking every chunk CRC"""
    chunks = []
    offset = 8
    while offset < len(data):
        length, = struct.unpack('>I', data[offset:offset + 4])
        chunk_type = data[offset + 4:offset + 8]
        payload = data[offset + 8:offset + 8 + length]
        crc, = struct.unpack('>I', data[offset + 8 + length:offset + 12 + length])
        assert crc == zlib.crc32(chunk_type + payload) & 0xffffffff, chunk_type
        chunks.append((chunk_type, payload))
        offset += 12 + length
    return chunks


class TrackingPixelGeneratorTests(SimpleTestCase):
    def test_gif_pixel(self):
        pixel = TrackingPixelGenerator.get_pixel('gif')
        self.assertTrue(pixel.startswith(b'GIF89a'))
        self.assertEqual(TrackingPixelGenerator.get_pixel_headers('gif')['Content-Type'], 'image/gif')

    def test_png_pixel(self):
        pixel = TrackingPixelGenerator.get_pixel('png')
        self.assertTrue(pixel.startswith(b'\x89PNG\r\n\x1a\n'))
        self.assertEqual(TrackingPixelGenerator.get_pixel_headers('png')['Content-Type'], 'image/png')

    def test_png_pixel_is_transparent(self):
        chunks = _png_chunks(TrackingPixelGenerator.get_pixel('png'))
        self.assertEqual([chunk_type for chunk_type, _ in chunks], [b'IHDR', b'IDAT', b'IEND'])

        width, height, bit_depth, color_type = struct.unpack('>IIBB', chunks[0][1][:10])
        self.assertEqual((width, height, bit_depth), (1, 1, 8))
        self.assertEqual(color_type, 6)

        # filter byte, then R G B A
        scanline = zlib.decompress(chunks[1][1])
        self.assertEqual(len(scanline), 5)
        self.assertEqual(scanline[4], 0)

    def test_pixel_headers_disable_caching(self):
        headers = TrackingPixelGenerator.get_pixel_headers()
        self.assertIn('no-store', headers['Cache-Control'])
        self.assertIn('no-cache', headers['Cache-Control'])
        self.assertEqual(headers['Pragma'], 'no-cache')
        self.assertEqual(headers['Expires'], '0')
