import uuid

from django.db import migrations, models
import django.utils.timezone
import tracking_service.links


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='ClickEvent',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('message_id', models.CharField(db_index=True, max_length=64)),
                ('link_index', models.PositiveIntegerField()),
                ('url', models.TextField()),
                ('clicked_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('ip_address', models.CharField(blank=True, default='', max_length=64)),
                ('user_agent', models.TextField(blank=True, default='')),
            ],
            options={
                'db_table': 'clicks',
                'ordering': ['-clicked_at'],
                'indexes': [models.Index(fields=['message_id', 'clicked_at'], name='clicks_message_clicked_idx')],
            },
        ),
        migrations.CreateModel(
            name='Message',
            fields=[
                ('id', models.CharField(default=tracking_service.links.generate_message_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ('to_email', models.CharField(blank=True, default='', max_length=255)),
                ('subject', models.TextField(blank=True, default='')),
                ('links', models.JSONField(blank=True, default=dict)),
                ('sent_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('metadata', models.JSONField(blank=True, default=dict)),
            ],
            options={
                'db_table': 'messages',
                'ordering': ['-sent_at'],
            },
        ),
        migrations.CreateModel(
            name='OpenEvent',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('message_id', models.CharField(db_index=True, max_length=64)),
                ('opened_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('ip_address', models.CharField(blank=True, default='', max_length=64)),
                ('user_agent', models.TextField(blank=True, default='')),
                ('referer', models.TextField(blank=True, default='')),
            ],
            options={
                'db_table': 'opens',
                'ordering': ['-opened_at'],
                'indexes': [models.Index(fields=['message_id', 'opened_at'], name='opens_message_opened_idx')],
            },
        ),
    ]
