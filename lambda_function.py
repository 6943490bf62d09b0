"""AWS Lambda handler for the FareHarbor events sync."""
import json
import logging
import os
import time
from dataclasses import asdict
from typing import Dict, Any

from processor.config import SyncConfig
from processor.exceptions import EmptyResultError
from processor.sync_runner import EventSyncRunner
from storage.event_store import open_event_store


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _error_response(message: str, error: Exception, duration: float) -> Dict[str, Any]:
    return {
        'statusCode': 500,
        'body': json.dumps({
            'message': message,
            'error': str(error),
            'error_type': type(error).__name__,
            'note': 'Previous events remain in place',
            'duration_seconds': round(duration, 2)
        })
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for the FareHarbor events sync.

    Invoked on a schedule (EventBridge) or asynchronously by the webhook
    function. Configuration comes from environment variables; see
    SyncConfig.from_env.

    Args:
        event: Invocation payload (unused)
        context: Lambda context object

    Returns:
        Response dict with statusCode and run statistics
    """
    setup_logging(os.environ.get('LOG_LEVEL', 'INFO'))
    logger = logging.getLogger(__name__)

    start_time = time.time()
    config = SyncConfig.from_env()
    logger.info(
        "Lambda execution started",
        extra={
            'company': config.company,
            'flow': config.flow,
            'events_file': config.events_file,
            'merge_existing': config.merge_existing,
            'use_browser': config.use_browser
        }
    )

    try:
        store = open_event_store(config.events_file)
        runner = EventSyncRunner(config, store)
        result = runner.run()

    except EmptyResultError as e:
        logger.error(f"Refusing to write empty result: {e}")
        return _error_response('Refused to write an empty event list', e, time.time() - start_time)

    except Exception as e:
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _error_response('Sync failed', e, time.time() - start_time)

    duration = time.time() - start_time
    logger.info(
        f"Lambda execution completed successfully in {round(duration, 2)}s: "
        f"{result.events_total} event(s), {result.items_skipped} item(s) skipped"
    )

    statistics = asdict(result)
    errors = statistics.pop('errors')
    statistics['duration_seconds'] = round(duration, 2)
    return {
        'statusCode': 200,
        'body': json.dumps({
            'message': 'Sync completed successfully' if result.written else 'Dry run completed',
            'statistics': statistics,
            'errors': errors
        })
    }
