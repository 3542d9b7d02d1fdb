import logging
import sys

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def setup_logging(level: str = 'INFO') -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())
    if any(getattr(handler, '_pawlens', False) for handler in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._pawlens = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    logging.getLogger('httpx').setLevel(logging.WARNING)
