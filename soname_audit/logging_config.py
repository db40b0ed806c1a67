import logging

import lief


def setup_logging(level: str = "INFO"):
    levelno = getattr(logging, level.upper(), logging.INFO)
    fmt = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    logging.basicConfig(level=levelno, format=fmt)
    # LIEF prints its own parser complaints to stderr; unreadable libraries are
    # already reported through the audit logs
    if levelno > logging.DEBUG:
        lief.logging.disable()
