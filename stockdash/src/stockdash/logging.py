import logging
import sys

def configure_logging(level=logging.INFO, verbose: bool = False):
    """Send log records to stderr so stdout only carries JSON envelopes."""
    if verbose:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    fmt = '[%(levelname)s] %(name)s: %(message)s' if verbose else '[%(levelname)s] %(message)s'
    handler.setFormatter(logging.Formatter(fmt))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    if root_logger.handlers:
        root_logger.handlers.clear()

    root_logger.addHandler(handler)

    # yfinance and urllib3 are chatty at DEBUG
    for noisy in ("yfinance", "urllib3", "peewee"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))
