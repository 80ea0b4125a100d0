import logging
import re
from pythonjsonlogger.json import JsonFormatter
from .config import Settings


class ContactRedactingFilter(logging.Filter):
    _email_re = re.compile(r"\b[\w.+-]+@[\w-]+\.[\w.-]+\b")
    # at least ten digits; ISO dates and clock times never match
    _phone_re = re.compile(r"(?<![\w:+-])(?!\d{4}-\d{2}-\d{2})\+?\d(?:[\s-]?\d){9,14}(?![\w:-])")

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            msg = record.getMessage()
        except Exception:
            return True
        msg = self._email_re.sub("[REDACTED_EMAIL]", msg)
        msg = self._phone_re.sub("[REDACTED_PHONE]", msg)
        record.msg = msg
        record.args = ()
        return True


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    handler = logging.StreamHandler()

    if settings.LOG_JSON:
        formatter = JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s"
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s"
        )

    handler.setFormatter(formatter)
    handler.addFilter(ContactRedactingFilter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    # Reduce noisy loggers
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
