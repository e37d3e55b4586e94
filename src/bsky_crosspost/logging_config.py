"""Configure logging for the application."""

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Transport libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO

    root = logging.getLogger("bsky_crosspost")
    root.setLevel(level)
    # Replace the handler from a previous call so it follows the current sys.stderr
    for old in [h for h in root.handlers if getattr(h, "name", None) == "bsky_crosspost"]:
        root.removeHandler(old)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name("bsky_crosspost")
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)

    transport_level = logging.DEBUG if debug else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)
