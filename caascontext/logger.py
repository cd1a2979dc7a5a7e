import contextvars
import logging
import sys
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace
from typing import Iterator, Tuple

import caascontext._globals as _globals

# Azure SDK loggers that emit per-request INFO records (headers, token fetches).
QUIET_LOGGERS = (
    "azure.core.pipeline.policies.http_logging_policy",
    "azure.identity",
)

LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[step]}</cyan> | "
    "{message}"
)

# ─── Pipeline step tagging ────────────────────────────────────────────────────

_active_steps: contextvars.ContextVar[Tuple[str, ...]] = contextvars.ContextVar("_active_steps", default=())


@contextmanager
def step_scope(name: str) -> Iterator[None]:
    """
    Tag every record logged inside the block with `name`.

    Scopes nest, so a lookup inside the "vault" step is reported as
    "vault.<inner>" when the inner call opens its own scope.
    """
    token = _active_steps.set(_active_steps.get() + (name,))
    try:
        yield
    finally:
        _active_steps.reset(token)


def current_step() -> str:
    return ".".join(_active_steps.get())


def _tag_step(record):
    record["extra"]["step"] = current_step()


class InterceptHandler(logging.Handler):
    """
    Re-emits stdlib LogRecords through loguru, so `logging.getLogger(__name__)`
    calls in caasbase and the Azure SDKs land in the same sinks.
    """

    def emit(self, record: logging.LogRecord) -> None:
        log = Logger.get_loguru()
        try:
            level = log.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk out of the logging module so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        log.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


# ─── Run logger ───────────────────────────────────────────────────────────────

class Logger:
    """
    One loguru configuration per caasbase run.

    Each run gets a UUID and its own log file; the console and the file share a
    format whose third column is the active pipeline step.
    """

    _configured = False
    _uuid = None
    _logger = None
    _log_path = None
    _handler_ids = SimpleNamespace(file=None, console=None)

    @staticmethod
    def _log_file(log_dir: Path, label: str | None) -> Path:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        started = datetime.now(timezone.utc).strftime("%Y-%m-%d_%H-%M-%S")
        return log_dir / f"{started}__{label or Logger._uuid}.log"

    @staticmethod
    def init_logger(
            log_dir: Path = _globals.DEFAULT_LOG_DIR,
            label: str = None,
            serialize: bool = False,
            pretty_console: bool = True,
            level: str = _globals.DEFAULT_LOG_LEVEL,
            enqueue: bool = True,
    ):
        """
        Configure loguru for this run and return the step-tagging logger.

        Args:
            log_dir (Path): Directory for the run's log file; created if missing.
            label (str | None): File name suffix. Defaults to the run UUID.
            serialize (bool): Write JSON lines to the file instead of text.
            pretty_console (bool): Also log to stderr.
            level (str): Minimum level for both sinks.
            enqueue (bool): Hand records to a writer thread.

        Repeated calls return the logger configured by the first one.
        """
        if Logger._configured:
            return Logger._logger

        from loguru import logger as base

        Logger._uuid = str(uuid.uuid4())
        Logger._log_path = Logger._log_file(log_dir, label)

        base.remove()
        tagged = base.patch(_tag_step)
        if pretty_console:
            Logger._handler_ids.console = tagged.add(
                sys.stderr, level=level, colorize=True, enqueue=enqueue, format=LOG_FORMAT
            )
        Logger._handler_ids.file = tagged.add(
            str(Logger._log_path), level=level, serialize=serialize, enqueue=enqueue, format=LOG_FORMAT
        )

        Logger._logger = tagged
        Logger._configured = True
        tagged.debug("[Logger] Run {} logging to {}", Logger._uuid, Logger._log_path)
        return tagged

    @staticmethod
    def intercept_stdlib(level: int = logging.NOTSET) -> None:
        """
        Route the root logger into loguru and keep the Azure SDK's per-request
        chatter at WARNING.
        """
        logging.basicConfig(handlers=[InterceptHandler()], level=level, force=True)
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    @staticmethod
    def get_loguru():
        if not Logger._configured:
            raise RuntimeError("Logger has not been initialized.")
        return Logger._logger

    @staticmethod
    def log_path() -> Path | None:
        return Logger._log_path

    @staticmethod
    def reset():
        root = logging.getLogger()
        for handler in [h for h in root.handlers if isinstance(h, InterceptHandler)]:
            root.removeHandler(handler)
        if Logger._logger:
            Logger._logger.remove()
        Logger._configured = False
        Logger._uuid = None
        Logger._logger = None
        Logger._log_path = None
        Logger._handler_ids = SimpleNamespace(file=None, console=None)
