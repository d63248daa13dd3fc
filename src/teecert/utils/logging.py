"""Console logging for teecert.

One "teecert" logger writes to stdout. INFO by default, DEBUG when the CLI
runs with --verbose. Messages must never carry private key material.
"""
import logging
import sys

LOGGER_NAME = "teecert"
LOG_FORMAT = "[%(asctime)s] %(levelname)s %(message)s"


def get_logger(verbose: bool = False) -> logging.Logger:
    log = logging.getLogger(LOGGER_NAME)
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
        log.setLevel(logging.INFO)
    if verbose:
        log.setLevel(logging.DEBUG)
    return log
