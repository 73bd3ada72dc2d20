import logging
import sys

from clinicbill.settings import settings

TEXT_FORMAT = "%(levelname)s %(name)s: %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Library loggers that are chatty at INFO on every CLI start.
NOISY_LOGGERS = ("sqlalchemy.engine", "alembic.runtime.migration", "faker.factory")


def _level(name: str | None) -> int:
    return getattr(logging, (name or settings.log_level).upper(), logging.INFO)


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger from settings.

    ``level`` overrides ``settings.log_level`` (the seed script runs at INFO
    regardless of the configured level). Library loggers in ``NOISY_LOGGERS``
    stay at WARNING unless the effective level is DEBUG.
    """
    root_level = _level(level)

    handler = logging.StreamHandler(sys.stderr)
    if settings.log_json:
        from pythonjsonlogger.json import JsonFormatter

        handler.setFormatter(
            JsonFormatter(
                fmt=JSON_FORMAT,
                rename_fields={"asctime": "timestamp", "levelname": "level"},
                static_fields={"service": "clinicbill"},
            )
        )
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.setLevel(root_level)
    root.handlers.clear()
    root.addHandler(handler)

    library_level = logging.DEBUG if root_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
