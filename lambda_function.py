"""AWS Lambda handler for ChatSync plan-to-calendar conversion."""
import json
import logging
import os
import time
from typing import Dict, Any

from planner.calendar_encoder import CalendarEncoder, CONTENT_TYPE, DEFAULT_FILENAME
from planner.exceptions import InvalidRangeError
from planner.preview import build_preview
from planner.schedule_parser import ScheduleParser
from planner.window import resolve_window
from scraper.chat_transcript import ChatTranscriptScraper


NO_PLAN_MESSAGE = 'Paste or load a plan first.'
NO_START_DATE_MESSAGE = 'Pick a start date.'
NO_EVENTS_MESSAGE = 'No events generated. The parser may not recognize this format yet.'


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


def _read_request(event: Dict[str, Any]) -> Dict[str, Any]:
    """Return the request fields from a direct or API Gateway invocation."""
    body = event.get('body')
    if body is None:
        return event
    if isinstance(body, str):
        body = json.loads(body) if body.strip() else {}
    if not isinstance(body, dict):
        raise json.JSONDecodeError("Expecting a JSON object", str(body), 0)
    return body


def _json_response(status_code: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(payload)
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler turning plan text into a calendar file or preview.

    Request fields: text, source_url, source_html, start_date,
    duration_months and action ("ics" or "preview").

    Args:
        event: Direct invocation payload or API Gateway proxy event
        context: Lambda context object

    Returns:
        Response dict with statusCode, headers and body
    """
    # Read configuration from environment variables
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    default_months = int(os.environ.get('DEFAULT_DURATION_MONTHS', '1'))
    filename = os.environ.get('CALENDAR_FILENAME', DEFAULT_FILENAME)
    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    logger.info(
        "Lambda execution started",
        extra={
            'default_months': default_months,
            'calendar_filename': filename
        }
    )

    try:
        try:
            request = _read_request(event)
        except json.JSONDecodeError as e:
            logger.warning(f"Rejected request with malformed JSON body: {e}")
            return _json_response(400, {
                'message': 'Request body is not valid JSON',
                'error': str(e)
            })

        action = request.get('action') or 'ics'
        plan_text = (request.get('text') or '').strip()

        # Fall back to the chat transcript when no text was supplied
        if not plan_text and (request.get('source_html') or request.get('source_url')):
            scraper = ChatTranscriptScraper(timeout=timeout_seconds)
            if request.get('source_html'):
                logger.info("Extracting plan text from supplied transcript HTML")
                plan_text = scraper.extract_text(request['source_html']).strip()
            else:
                plan_text = scraper.fetch_text(request['source_url']).strip()

        if not plan_text:
            logger.warning("No plan text available")
            return _json_response(400, {'message': NO_PLAN_MESSAGE})

        if not request.get('start_date'):
            logger.warning("No start date supplied")
            return _json_response(400, {'message': NO_START_DATE_MESSAGE})

        try:
            start_date, end_date = resolve_window(
                request['start_date'],
                request.get('duration_months'),
                default_months=default_months
            )
            logger.info("Parsing plan text")
            events = ScheduleParser().parse(plan_text, start_date, end_date)
        except InvalidRangeError as e:
            logger.warning(f"Invalid date window: {e}")
            return _json_response(400, {
                'message': 'Invalid date window',
                'error': str(e),
                'error_type': type(e).__name__
            })

        if not events:
            logger.info("Parser produced no events")
            return _json_response(422, {'message': NO_EVENTS_MESSAGE})

        duration = time.time() - start_time

        if action == 'preview':
            logger.info(
                "Lambda execution completed successfully",
                extra={'action': action, 'events': len(events)}
            )
            return _json_response(200, {
                'message': f'Previewing {len(events)} events.',
                'start_date': start_date.isoformat(),
                'end_date': end_date.isoformat(),
                'preview': build_preview(events),
                'duration_seconds': round(duration, 2)
            })

        logger.info("Encoding calendar document")
        ics_content = CalendarEncoder().encode(events)

        logger.info(
            "Lambda execution completed successfully",
            extra={
                'action': action,
                'events': len(events),
                'duration_seconds': round(time.time() - start_time, 2)
            }
        )

        return {
            'statusCode': 200,
            'headers': {
                'Content-Type': CONTENT_TYPE,
                'Content-Disposition': f'attachment; filename="{filename}"',
                'X-Event-Count': str(len(events))
            },
            'body': ics_content
        }

    except Exception as e:
        duration = time.time() - start_time

        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )

        return _json_response(500, {
            'message': 'Calendar generation failed',
            'error': str(e),
            'error_type': type(e).__name__,
            'duration_seconds': round(duration, 2)
        })
