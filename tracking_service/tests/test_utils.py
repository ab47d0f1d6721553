from django.test import RequestFactory, SimpleTestCase

from tracking_service.utils import get_client_ip, is_allowed_origin


class GetClientIpTests(SimpleTestCase):
    def setUp(self):
        self.factory = RequestFactory()

    def test_first_forwarded_address(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR='203.0.113.7, 10.0.0.1')
        self.assertEqual(get_client_ip(request), '203.0.113.7')

    def test_ipv6_forwarded_address(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR='2001:db8::1')
        self.assertEqual(get_client_ip(request), '2001:db8::1')

    def test_remote_addr_without_forwarding(self):
        request = self.factory.get('/', REMOTE_ADDR='198.51.100.4')
        self.assertEqual(get_client_ip(request), '198.51.100.4')

    def test_invalid_forwarded_value_falls_back_to_remote_addr(self):
        for forwarded in ('1' * 200, 'not-an-ip', '<script>', ' , 10.0.0.1'):
            with self.subTest(forwarded=forwarded):
                request = self.factory.get('/', HTTP_X_FORWARDED_FOR=forwarded, REMOTE_ADDR='198.51.100.4')
                self.assertEqual(get_client_ip(request), '198.51.100.4')

    def test_unknown_address(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR='x' * 500, REMOTE_ADDR='')
        self.assertEqual(get_client_ip(request), '')


class AllowedOriginTests(SimpleTestCase):
    def setUp(self):
        self.factory = RequestFactory()

    def test_empty_list_allows_everything(self):
        self.assertTrue(is_allowed_origin(self.factory.get('/'), ()))

    def test_origin_matches_by_host(self):
        request = self.factory.get('/', HTTP_ORIGIN='https://dashboard.example.com')
        self.assertTrue(is_allowed_origin(request, ('dashboard.example.com',)))
        self.assertTrue(is_allowed_origin(request, ('https://dashboard.example.com/',)))

    def test_other_origin_is_rejected(self):
        request = self.factory.get('/', HTTP_ORIGIN='https://evil.example.com')
        self.assertFalse(is_allowed_origin(request, ('dashboard.example.com',)))
