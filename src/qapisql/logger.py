import logging
from typing import Any, Optional, Sequence

from qapisql.settings import settings as qapi_settings

_configured = False


def setup_global_logging(level: str = "INFO") -> None:
    """Configure the root logger once.

    Args:
        level: Log level name (e.g., "DEBUG", "INFO"); unknown names fall back to INFO
    """
    global _configured
    if _configured:
        return
    lvl = logging.getLevelName(level.upper())
    logging.basicConfig(
        level=lvl if isinstance(lvl, int) else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    _configured = True


def get_logger(name: Optional[str] = None) -> "Logger":
    """Return a logger namespaced under `qapisql`.

    Args:
        name: Component name, usually a class or module name
    """
    return Logger(name)


class Logger:
    """Thin wrapper over standard logging for the compilers and the engine.

    - Configures global logging from `LOG_LEVEL` on first use.
    - `.fragment(kind, sql, args)` logs a produced SQL fragment at DEBUG.
    - `.message(text)` logs at the configured `LOG_LEVEL`.
    """

    def __init__(self, name: Optional[str] = None) -> None:
        if not _configured:
            setup_global_logging(qapi_settings.LOG_LEVEL)
        self._logger = logging.getLogger(f"qapisql.{name}" if name else "qapisql")

    @property
    def name(self) -> str:
        return self._logger.name

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.error(msg, *args, **kwargs)

    def fragment(self, kind: str, sql: str, args: Sequence[Any]) -> None:
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug("%s fragment: %s args=%r", kind, sql, list(args))

    def message(self, msg: str, *args: Any, **kwargs: Any) -> None:
        level = logging.getLevelName((qapi_settings.LOG_LEVEL or "INFO").upper())
        self._logger.log(level if isinstance(level, int) else logging.INFO, msg, *args, **kwargs)
