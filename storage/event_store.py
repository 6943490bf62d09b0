"""Storage for the published events document."""
import json
import logging
import os
import stat
import tempfile
from typing import List
from urllib.parse import urlparse

import boto3
from botocore.exceptions import ClientError

from processor.models import CalendarEvent

logger = logging.getLogger(__name__)


def serialize_events(events: List[CalendarEvent]) -> str:
    """
    Render events as the published JSON document.

    Two-space indentation and a trailing newline, so unchanged input
    produces byte-identical output.
    """
    return json.dumps([e.to_dict() for e in events], indent=2, ensure_ascii=False) + "\n"


def deserialize_events(raw: str, source: str) -> List[CalendarEvent]:
    """
    Parse an events document, tolerating damage.

    Args:
        raw: Document text
        source: Location, for log messages

    Returns:
        Usable events; an unreadable document yields an empty list
    """
    try:
        data = json.loads(raw)
    except ValueError as e:
        logger.warning(f"Events document {source} is not valid JSON: {e}")
        return []

    if not isinstance(data, list):
        logger.warning(f"Events document {source} is not a JSON array; ignoring it")
        return []

    events = []
    for item in data:
        event = CalendarEvent.from_dict(item)
        if event is not None:
            events.append(event)
        else:
            logger.warning(f"Skipping non-object entry in {source}: {item!r}")
    return events


class JsonFileEventStore:
    """Events document on the local filesystem."""

    DEFAULT_MODE = 0o644

    def __init__(self, path: str):
        self.path = path

    def read_events(self) -> List[CalendarEvent]:
        """
        Read the current document.

        Returns:
            Persisted events, or an empty list if the file is missing or invalid
        """
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                raw = f.read()
        except FileNotFoundError:
            logger.info(f"No existing events file at {self.path}")
            return []
        except OSError as e:
            logger.warning(f"Could not read events file {self.path}: {e}")
            return []
        return deserialize_events(raw, self.path)

    def _target_mode(self) -> int:
        try:
            return stat.S_IMODE(os.stat(self.path).st_mode)
        except FileNotFoundError:
            return self.DEFAULT_MODE

    def write_events(self, events: List[CalendarEvent]) -> None:
        """
        Replace the document atomically.

        The new content goes to a temporary file in the same directory,
        which is then renamed over the target. The target keeps its
        permissions; a new file gets DEFAULT_MODE.
        """
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(prefix='.events-', suffix='.json', dir=directory)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8', newline='\n') as f:
                f.write(serialize_events(events))
            os.chmod(tmp_path, self._target_mode())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.info(f"Wrote {len(events)} event(s) to {self.path}")


class S3EventStore:
    """Events document stored as a single S3 object."""

    def __init__(self, bucket: str, key: str, client=None):
        """
        Initialize S3 client and object location.

        Args:
            bucket: Bucket name
            key: Object key of the events document
            client: Optional boto3 S3 client
        """
        self.bucket = bucket
        self.key = key
        self.s3 = client or boto3.client('s3')
        logger.info(f"Initialized S3EventStore for s3://{bucket}/{key}")

    @property
    def location(self) -> str:
        return f"s3://{self.bucket}/{self.key}"

    def read_events(self) -> List[CalendarEvent]:
        try:
            response = self.s3.get_object(Bucket=self.bucket, Key=self.key)
        except ClientError as e:
            code = e.response.get('Error', {}).get('Code')
            if code in ('NoSuchKey', '404'):
                logger.info(f"No existing events document at {self.location}")
                return []
            logger.error(f"Error reading {self.location}: {e}")
            raise
        raw = response['Body'].read().decode('utf-8')
        return deserialize_events(raw, self.location)

    def write_events(self, events: List[CalendarEvent]) -> None:
        """Replace the object in one PUT; readers never see a partial document."""
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=self.key,
                Body=serialize_events(events).encode('utf-8'),
                ContentType='application/json; charset=utf-8'
            )
        except ClientError as e:
            logger.error(f"Error writing {self.location}: {e}")
            raise
        logger.info(f"Wrote {len(events)} event(s) to {self.location}")


def open_event_store(location: str):
    """
    Pick a store for an events location.

    Args:
        location: Local path, or s3://bucket/key

    Returns:
        S3EventStore for s3:// locations, JsonFileEventStore otherwise
    """
    if location.startswith('s3://'):
        parsed = urlparse(location)
        key = parsed.path.lstrip('/')
        if not parsed.netloc or not key:
            raise ValueError(f"Invalid S3 events location: {location}")
        return S3EventStore(bucket=parsed.netloc, key=key)
    return JsonFileEventStore(location)
