"""
Logging for the FairAI SDK.

Every module logs under the ``fairai`` namespace:

    fairai.client                 SDK setup
    fairai.operators.resolution   one INFO line per skipped registration
    fairai.operators.validation   fee checks (DEBUG), underpaid operators (INFO)
    fairai.chain.provider         RPC fallback (WARNING), exhausted providers (ERROR)
    fairai.ledger.query           GraphQL paging
    fairai.payment.circle         outgoing USDC transactions
    fairai.upload                 request uploads

Components can be tuned separately from the root level, e.g.
``FAIRAI_LOG_LEVELS="operators=DEBUG,chain=WARNING"`` to follow discovery
without the RPC noise.
"""

import json
import logging
import sys

# Default Logger Name
LOGGER_NAME = "fairai"


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def parse_component_levels(spec: str | None) -> dict[str, str]:
    """
    Parse ``"operators=DEBUG,chain=WARNING"`` into ``{"operators": "DEBUG", ...}``.

    Raises:
        ValueError: an entry is not ``component=LEVEL``
    """
    levels: dict[str, str] = {}
    if not spec:
        return levels
    for entry in spec.split(","):
        entry = entry.strip()
        if not entry:
            continue
        component, sep, level = entry.partition("=")
        if not sep or not component.strip() or not level.strip():
            raise ValueError(f"Invalid log level entry: {entry!r}")
        levels[component.strip()] = level.strip().upper()
    return levels


def configure_logging(
    level: int | str = logging.INFO,
    json_format: bool = False,
    component_levels: dict[str, int | str] | None = None,
) -> logging.Logger:
    """
    Configure the FairAI logger.

    Args:
        level: Logging level (e.g., logging.INFO, "DEBUG")
        json_format: Whether to emit one JSON object per line
        component_levels: Levels for child loggers, keyed by the name
            below ``fairai`` (e.g. {"chain.provider": "WARNING"})

    Returns:
        The configured logger instance.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Re-configuring replaces the handler instead of stacking a second one
    if logger.handlers:
        logger.handlers.clear()

    # Child levels filter on their own; the handler passes what they let through
    handler = logging.StreamHandler(sys.stdout)

    if json_format:
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s [%(name)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False

    for component, component_level in (component_levels or {}).items():
        get_logger(component).setLevel(component_level)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a child logger of fairai."""
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)
