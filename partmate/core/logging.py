import json
import logging
from datetime import datetime, timezone

from partmate.config import get_settings

# Optional ``extra=`` fields copied into JSON records when a call sets them.
_CONTEXT_FIELDS = ("user_id", "part_row_id", "bucket")


class JsonFormatter(logging.Formatter):
    def __init__(self, backend_mode=None):
        super().__init__()
        self.backend_mode = backend_mode

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.backend_mode:
            payload["backend"] = self.backend_mode
        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = str(value)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


def setup_logging() -> None:
    settings = get_settings()
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handler = logging.StreamHandler()
    if settings.LOG_JSON:
        handler.setFormatter(JsonFormatter(backend_mode=settings.BACKEND_MODE))
    else:
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s %(levelname)s %(name)s - %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        )

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)
    # Pillow logs every plugin import at DEBUG
    logging.getLogger("PIL").setLevel(max(level, logging.WARNING))
