"""Logging for Drive JSON Sync.

Library modules obtain child loggers of ``drive_json_sync`` and never
configure handlers themselves. The CLI calls ``setup_logging``, which
attaches one stderr handler guarded by ``CredentialFilter`` so bearer
tokens, refresh tokens and PKCE verifiers are masked even when they
slip into a message or an error body.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from drive_json_sync.config import Config

LOGGER_NAME = "drive_json_sync"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

MASK = "***"

# Field names whose values are credentials, in JSON, form or query form
CREDENTIAL_FIELDS = ("access_token", "refresh_token", "id_token", "code_verifier", "client_secret")

_BEARER_PATTERN = re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE)
_FIELD_PATTERN = re.compile(
    r"""(["']?\b(?:%s)\b["']?\s*[:=]\s*["']?)[^\s"'&,;}]+""" % "|".join(CREDENTIAL_FIELDS)
)
# Authorization codes only appear as form or query parameters
_CODE_PARAM_PATTERN = re.compile(r"([?&]code=)[^\s&]+")


def mask_credentials(text: str) -> str:
    """Replace credential values in ``text`` with ``***``."""
    text = _BEARER_PATTERN.sub(rf"\g<1>{MASK}", text)
    text = _FIELD_PATTERN.sub(rf"\g<1>{MASK}", text)
    return _CODE_PARAM_PATTERN.sub(rf"\g<1>{MASK}", text)


class CredentialFilter(logging.Filter):
    """Mask credentials in the rendered message of every record.

    The message is rendered once with its arguments and the record is
    rewritten to carry the masked text, so later handlers and formatters
    never see the originals.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = mask_credentials(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


_handler: logging.Handler | None = None


def setup_logging(config: Config) -> None:
    """Attach the stderr handler to the package logger.

    Repeated calls keep the one handler and only change its level.

    Args:
        config: Configuration supplying ``log_level``
    """
    global _handler

    level = getattr(logging, config.log_level.value)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        _handler.addFilter(CredentialFilter())
        logger.addHandler(_handler)
        # Sync diagnostics stay off the host application's root handlers
        logger.propagate = False

    _handler.setLevel(level)
    logger.debug("Logging to stderr at %s", config.log_level.value)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``drive_json_sync`` namespace."""
    if name == LOGGER_NAME or name.startswith(f"{LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def reset_logging() -> None:
    """Detach the handler installed by ``setup_logging``."""
    global _handler
    logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler.close()
        _handler = None
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
