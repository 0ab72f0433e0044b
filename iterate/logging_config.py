import logging
from typing import Final, Union

DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Configure standard library logging for the service process.

    Safe to call more than once; later calls replace the handlers installed by
    earlier ones so reloads do not duplicate output.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(
        level=level,
        format=DEFAULT_LOG_FORMAT,
        handlers=[logging.StreamHandler()],
        force=True,
    )
    # httpx logs each request at INFO.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
