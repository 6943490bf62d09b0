"""Unit tests for the events document stores."""
import json
import os
import stat

import boto3
import pytest
from moto import mock_aws

from processor.models import CalendarEvent
from storage.event_store import (
    JsonFileEventStore,
    S3EventStore,
    deserialize_events,
    open_event_store,
    serialize_events,
)

BUCKET = 'test-events-bucket'


@pytest.fixture
def events():
    return [
        CalendarEvent(
            title='Café Paddle',
            start='2026-01-31T18:00:00',
            end='2026-01-31T21:00:00',
            url='https://fareharbor.com/embeds/book/floridarama/items/1/availability/2/book/',
            thumbnail='https://cdn.example.com/paddle.jpg'
        ),
        CalendarEvent.from_dict({
            'title': 'Potluck',
            'start': '2026-02-01T12:00:00',
            'end': '2026-02-01T14:00:00',
            'url': 'https://example.org/potluck',
            'location': 'Town hall',
        }),
    ]


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mocked AWS credentials for moto."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def s3_client(aws_credentials):
    with mock_aws():
        client = boto3.client('s3', region_name='us-east-1')
        client.create_bucket(Bucket=BUCKET)
        yield client


class TestSerialization:
    """Test cases for the document format."""

    def test_format(self, events):
        text = serialize_events(events)

        assert text.endswith("]\n")
        assert '  {\n    "title": "Café Paddle"' in text
        assert json.loads(text)[1] == {
            'title': 'Potluck',
            'start': '2026-02-01T12:00:00',
            'end': '2026-02-01T14:00:00',
            'url': 'https://example.org/potluck',
            'location': 'Town hall',
        }

    def test_thumbnail_omitted_when_unset(self, events):
        assert 'thumbnail' not in json.loads(serialize_events(events))[1]

    def test_empty_list(self):
        assert serialize_events([]) == "[]\n"

    def test_deserialize_keeps_partial_entries(self):
        raw = json.dumps([
            {'title': 'Ok', 'start': '2026-01-01T10:00:00', 'url': 'https://example.org/a'},
            {'title': 'No start', 'url': 'https://example.org/b'},
            'not an object',
        ])

        events = deserialize_events(raw, 'test')

        assert [e.title for e in events] == ['Ok', 'No start']
        assert events[0].end is None
        assert events[1].start == ''

    def test_persisted_entries_written_back_unchanged(self):
        entries = [
            {'title': 'Manual no end', 'start': '2099-12-01T10:00:00', 'url': 'https://example.org/x'},
            {'title': 'Manual no url', 'start': '2099-12-02T10:00:00', 'end': '2099-12-02T11:00:00'},
            {'start': '2099-12-03T09:00:00', 'end': '2099-12-03T10:00:00', 'allDay': False},
        ]

        events = deserialize_events(json.dumps(entries), 'test')

        assert json.loads(serialize_events(events)) == entries

    def test_deserialize_invalid_document(self):
        assert deserialize_events('{broken', 'test') == []
        assert deserialize_events('{"events": []}', 'test') == []


class TestJsonFileEventStore:
    """Test cases for JsonFileEventStore class."""

    def test_missing_file_reads_empty(self, tmp_path):
        store = JsonFileEventStore(str(tmp_path / 'events.json'))

        assert store.read_events() == []

    def test_write_then_read(self, tmp_path, events):
        path = tmp_path / 'nested' / 'events.json'
        store = JsonFileEventStore(str(path))

        store.write_events(events)

        assert path.read_text(encoding='utf-8') == serialize_events(events)
        assert store.read_events() == events

    def test_write_leaves_no_temp_files(self, tmp_path, events):
        store = JsonFileEventStore(str(tmp_path / 'events.json'))

        store.write_events(events)
        store.write_events(events[:1])

        assert os.listdir(tmp_path) == ['events.json']

    def test_new_file_is_world_readable(self, tmp_path, events):
        path = tmp_path / 'events.json'

        JsonFileEventStore(str(path)).write_events(events)

        assert stat.S_IMODE(os.stat(path).st_mode) == 0o644

    def test_rewrite_keeps_existing_permissions(self, tmp_path, events):
        path = tmp_path / 'events.json'
        path.write_text('[]\n', encoding='utf-8')
        os.chmod(path, 0o664)

        JsonFileEventStore(str(path)).write_events(events)

        assert stat.S_IMODE(os.stat(path).st_mode) == 0o664

    def test_failed_write_keeps_previous_document(self, tmp_path, events, monkeypatch):
        path = tmp_path / 'events.json'
        store = JsonFileEventStore(str(path))
        store.write_events(events)
        before = path.read_text(encoding='utf-8')

        def boom(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr('storage.event_store.os.replace', boom)

        with pytest.raises(OSError):
            store.write_events([])

        assert path.read_text(encoding='utf-8') == before
        assert os.listdir(tmp_path) == ['events.json']


class TestS3EventStore:
    """Test cases for S3EventStore class."""

    def test_missing_object_reads_empty(self, s3_client):
        store = S3EventStore(BUCKET, 'events.json', client=s3_client)

        assert store.read_events() == []

    def test_write_then_read(self, s3_client, events):
        store = S3EventStore(BUCKET, 'site/events.json', client=s3_client)

        store.write_events(events)

        obj = s3_client.get_object(Bucket=BUCKET, Key='site/events.json')
        assert obj['Body'].read().decode('utf-8') == serialize_events(events)
        assert obj['ContentType'].startswith('application/json')
        assert store.read_events() == events

    def test_location(self, s3_client):
        assert S3EventStore(BUCKET, 'a/b.json', client=s3_client).location == f"s3://{BUCKET}/a/b.json"


class TestOpenEventStore:
    """Test cases for store selection."""

    def test_local_path(self, tmp_path):
        store = open_event_store(str(tmp_path / 'events.json'))

        assert isinstance(store, JsonFileEventStore)

    def test_s3_location(self, s3_client):
        store = open_event_store(f"s3://{BUCKET}/public/events.json")

        assert isinstance(store, S3EventStore)
        assert store.bucket == BUCKET
        assert store.key == 'public/events.json'

    def test_s3_location_without_key(self):
        with pytest.raises(ValueError):
            open_event_store(f"s3://{BUCKET}/")
