"""
Create a manual campaign and print its tracking snippet
Run: python manage.py generate_snippet "October Newsletter"
"""
from django.core.management.base import BaseCommand, CommandError

from tracking_service.campaigns import DEFAULT_CAMPAIGN, create_manual_campaign
from tracking_service.store import EventStoreError


class Command(BaseCommand):
    help = 'Generate a tracking pixel snippet for a manually sent campaign'

    def add_arguments(self, parser):
        parser.add_argument('campaign_name', nargs='*', help=f'Campaign name (default: {DEFAULT_CAMPAIGN})')

    def handle(self, *args, **options):
        campaign_name = ' '.join(options['campaign_name']).strip() or DEFAULT_CAMPAIGN

        try:
            message_id, snippet = create_manual_campaign(campaign_name)
        except EventStoreError as e:
            raise CommandError(f"Could not save campaign: {e}") from e

        self.stdout.write("=" * 60)
        self.stdout.write(f"Campaign:   {campaign_name}")
        self.stdout.write(f"Message ID: {message_id}")
        self.stdout.write("=" * 60)
        self.stdout.write("Paste this at the end of your email HTML:\n")
        self.stdout.write(snippet)
        self.stdout.write("")
        self.stdout.write(self.style.SUCCESS("Campaign saved. Opens will show up in /api/stats"))
