from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings

from tracking_service.models import Message
from tracking_service.store import EventStoreError


@override_settings(TRACK_SECRET='test-secret', TRACKING_BASE_URL='https://track.example.com')
class GenerateSnippetCommandTests(TestCase):
    def test_generate_snippet(self):
        out = StringIO()
        call_command('generate_snippet', 'October', 'Newsletter', stdout=out)

        message = Message.objects.get()
        self.assertEqual(message.subject, 'October Newsletter')
        self.assertEqual(message.metadata, {'campaign': 'October Newsletter', 'manual': True})

        output = out.getvalue()
        self.assertIn('<!-- Email Tracking -->', output)
        self.assertIn(f'https://track.example.com/pixel?m={message.id}&sig=', output)

    def test_default_campaign_name(self):
        call_command('generate_snippet', stdout=StringIO())
        self.assertEqual(Message.objects.get().subject, 'Manual Campaign')

    @patch('tracking_service.campaigns.get_event_store')
    def test_store_error(self, mock_get_store):
        mock_get_store.return_value.insert.side_effect = EventStoreError('database down')

        with self.assertRaises(CommandError):
            call_command('generate_snippet', 'Oct', stdout=StringIO())
