import logging
import sys

from loguru import logger


LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> <level>{level.name:<7}</level> "
    "<magenta>{extra[component]:<12}</magenta> {message}"
)

# driver chatter that drowns the application log below WARNING
QUIET_LOGGERS = ("pymongo", "motor", "multipart")


def _component(record) -> None:
    # hackmates.services.thread_view -> thread_view
    if "component" not in record["extra"]:
        record["extra"]["component"] = (record["name"] or "hackmates").rsplit(".", 1)[-1]


class InterceptHandler(logging.Handler):
    """Hand uvicorn and driver records over to loguru, keeping the caller's frame."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        component = record.name.split(".", 1)[0]
        logger.bind(component=component).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def configure_logging(log_level: str) -> None:
    logger.remove()
    logger.configure(patcher=_component)
    logger.add(
        sys.stderr,
        level=log_level,
        format=LOG_FORMAT,
        colorize=sys.stderr.isatty(),
        backtrace=False,
        diagnose=False,
    )
    logging.basicConfig(handlers=[InterceptHandler()], level=log_level, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
