"""
Event store adapters

The tracking core only talks to storage through EventStore: insert,
select_all, select_by_key and count over three collections (messages, opens,
clicks). Records are plain dicts keyed by column name.

DjangoEventStore is the default and uses the ORM models. SupabaseEventStore
talks to a Supabase/PostgREST instance over HTTP.
"""
import json
import logging
from functools import lru_cache

import requests
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import DatabaseError, OperationalError, connections, router, transaction
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)

MESSAGES = 'messages'
OPENS = 'opens'
CLICKS = 'clicks'

COLLECTIONS = (MESSAGES, OPENS, CLICKS)

# PostgreSQL "query_canceled", raised when statement_timeout fires
PG_QUERY_CANCELED = '57014'


class EventStoreError(Exception):
    """Storage was unreachable or rejected the operation"""


class EventStoreTimeout(EventStoreError):
    """Storage did not answer within the allowed time"""


def message_links(record):
    """
    Link mapping of a message record.

    Older rows (and the Supabase schema) keep the mapping under
    metadata.links instead of a links column.
    """
    if not record:
        return {}
    links = record.get('links')
    if not links:
        links = (record.get('metadata') or {}).get('links')
    return links or {}


class EventStore:
    """Contract consumed by the tracking core"""

    def insert(self, collection, record):
        raise NotImplementedError

    def select_all(self, collection, filters=None, order=None):
        raise NotImplementedError

    def select_by_key(self, collection, key, value, timeout=None):
        raise NotImplementedError

    def count(self, collection, filters=None):
        # Adapters without a count-only query fall back to fetching rows
        return len(self.select_all(collection, filters))

    def ping(self):
        """Cheap connectivity check, raises EventStoreError on failure"""
        self.count(MESSAGES)


class DjangoEventStore(EventStore):
    """Event store backed by the Django ORM"""

    def _model(self, collection):
        from .models import ClickEvent, Message, OpenEvent

        models = {
            MESSAGES: Message,
            OPENS: OpenEvent,
            CLICKS: ClickEvent,
        }
        try:
            return models[collection]
        except KeyError:
            raise EventStoreError(f"Unknown collection: {collection}") from None

    def insert(self, collection, record):
        model = self._model(collection)
        try:
            obj = model.objects.create(**record)
        except DatabaseError as e:
            raise EventStoreError(f"Insert into {collection} failed: {e}") from e

        return {**record, 'id': obj.pk}

    def _queryset(self, collection, filters=None, order=None):
        queryset = self._model(collection).objects.filter(**(filters or {}))
        if order:
            queryset = queryset.order_by(order)
        return queryset

    def select_all(self, collection, filters=None, order=None):
        try:
            return list(self._queryset(collection, filters, order).values())
        except DatabaseError as e:
            raise EventStoreError(f"Select from {collection} failed: {e}") from e

    def select_by_key(self, collection, key, value, timeout=None):
        """
        Single-row lookup by column.

        The timeout is enforced on PostgreSQL only, through a transaction-local
        statement_timeout (a cancelled query raises EventStoreTimeout). Other
        backends run the lookup unbounded; SQLite is only meant for local
        development and tests.
        """
        model = self._model(collection)
        alias = router.db_for_read(model)
        connection = connections[alias]

        try:
            with transaction.atomic(using=alias):
                if timeout and connection.vendor == 'postgresql':
                    with connection.cursor() as cursor:
                        cursor.execute(
                            "SET LOCAL statement_timeout = %s",
                            [int(timeout * 1000)]
                        )
                return model.objects.using(alias).filter(**{key: value}).values().first()
        except OperationalError as e:
            if getattr(e.__cause__, 'pgcode', None) == PG_QUERY_CANCELED:
                raise EventStoreTimeout(f"Lookup in {collection} timed out after {timeout}s") from e
            raise EventStoreError(f"Lookup in {collection} failed: {e}") from e
        except DatabaseError as e:
            raise EventStoreError(f"Lookup in {collection} failed: {e}") from e

    def count(self, collection, filters=None):
        try:
            return self._queryset(collection, filters).count()
        except DatabaseError as e:
            raise EventStoreError(f"Count on {collection} failed: {e}") from e


class SupabaseEventStore(EventStore):
    """
    Event store on top of the Supabase REST API (PostgREST)

    Expects tables named after the collections with the same columns as the
    Django models.
    """

    def __init__(self, url=None, key=None, session=None, timeout=10):
        self.url = (url or settings.SUPABASE_URL).rstrip('/')
        self.key = key or settings.SUPABASE_ANON_KEY
        if not self.url or not self.key:
            raise ValueError("SupabaseEventStore requires SUPABASE_URL and SUPABASE_ANON_KEY")

        self.session = session or requests.Session()
        self.timeout = timeout
        self.headers = {
            'apikey': self.key,
            'Authorization': f'Bearer {self.key}',
            'Content-Type': 'application/json',
            'Prefer': 'return=minimal',
        }

    def _endpoint(self, collection):
        if collection not in COLLECTIONS:
            raise EventStoreError(f"Unknown collection: {collection}")
        return f"{self.url}/rest/v1/{collection}"

    @staticmethod
    def _params(filters=None, order=None):
        params = {column: f'eq.{value}' for column, value in (filters or {}).items()}
        if order:
            if order.startswith('-'):
                params['order'] = f'{order[1:]}.desc'
            else:
                params['order'] = f'{order}.asc'
        return params

    def _request(self, method, collection, timeout=None, **kwargs):
        url = self._endpoint(collection)
        headers = {**self.headers, **kwargs.pop('headers', {})}

        try:
            response = self.session.request(
                method, url, headers=headers, timeout=timeout or self.timeout, **kwargs
            )
        except requests.Timeout as e:
            raise EventStoreTimeout(f"Supabase {method} {collection} timed out") from e
        except requests.RequestException as e:
            raise EventStoreError(f"Supabase {method} {collection} failed: {e}") from e

        logger.debug(f"Supabase {method} {collection}: {response.status_code}")

        if not response.ok:
            raise EventStoreError(
                f"Supabase {method} {collection} returned {response.status_code}: {response.text[:200]}"
            )

        return response

    def insert(self, collection, record):
        self._request(
            'POST', collection,
            data=json.dumps(record, cls=DjangoJSONEncoder)
        )
        # return=minimal: PostgREST sends no body back
        return record

    def select_all(self, collection, filters=None, order=None):
        response = self._request('GET', collection, params=self._params(filters, order))
        return response.json()

    def select_by_key(self, collection, key, value, timeout=None):
        params = {key: f'eq.{value}', 'limit': 1}
        response = self._request('GET', collection, timeout=timeout, params=params)
        rows = response.json()
        return rows[0] if rows else None

    def count(self, collection, filters=None):
        params = {**self._params(filters), 'select': 'id', 'limit': 1}
        response = self._request(
            'GET', collection,
            params=params,
            headers={'Prefer': 'count=exact'}
        )

        # Content-Range: 0-0/42 (or */0 when empty)
        content_range = response.headers.get('Content-Range', '')
        total = content_range.rpartition('/')[2]
        if total.isdigit():
            return int(total)

        logger.warning(f"Supabase count on {collection} returned no total, fetching rows instead")
        return super().count(collection, filters)


@lru_cache(maxsize=None)
def get_event_store():
    """Event store configured by TRACKING_EVENT_STORE"""
    store_class = import_string(settings.TRACKING_EVENT_STORE)
    return store_class()
