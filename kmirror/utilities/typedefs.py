"""
Type aliases for the loggers accepted by the API functions.

``logging.LoggerAdapter`` is generic only in the type-sheds, not at runtime.
"""
import logging
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    LoggerAdapter = logging.LoggerAdapter[Any]
else:
    LoggerAdapter = logging.LoggerAdapter

# Either a module-level logger or a per-object adapter (see `kmirror.engines.loggers`).
Logger = Union[logging.Logger, LoggerAdapter]
