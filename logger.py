"""
Logging for the coupon service.

Every module logs under the ``coupons`` logger (``coupons.engine``,
``coupons.scheduler``, ``coupons.api``) so the rule engine, the expiry job
and the HTTP routes share one stdout handler. The level comes from
``LOG_LEVEL`` via config.settings.
"""
import logging
import sys

from config import settings

logger = logging.getLogger("coupons")
logger.setLevel(settings.log_level)

if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(settings.log_level)
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    logger.addHandler(handler)

# uvicorn configures the root logger too; keep coupon records from printing twice
logger.propagate = False


def get_logger(name: str = None) -> logging.Logger:
    """Return the ``coupons`` logger, or its ``coupons.<name>`` child."""
    if name:
        return logger.getChild(name)
    return logger
