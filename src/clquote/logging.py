import logging

"""
The package logger. Its level is set from the `log_level` setting when the configuration is
loaded.
"""

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger("clquote")
logger.propagate = False
logger.setLevel(logging.INFO)

_handler = logging.StreamHandler()
_handler.setFormatter(logging.Formatter(LOG_FORMAT))
logger.addHandler(_handler)
