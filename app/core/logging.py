import logging
from typing import List, Optional


def setup_logging(*, environment: str, level_name: Optional[str] = None) -> None:
    """Configure application logging.

    - Dev: console logs, DEBUG level.
    - Prod: console logs, INFO level.

    An explicit level_name (e.g. "WARNING") overrides the environment default.
    Safe to call multiple times (won't double-add handlers).
    """

    root = logging.getLogger()
    if root.handlers:
        return

    env = (environment or "development").lower().strip()
    level = logging.INFO if env == "production" else logging.DEBUG
    if level_name:
        level = logging.getLevelName(level_name.strip().upper())
        if not isinstance(level, int):
            level = logging.INFO

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    handlers: List[logging.Handler] = []

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    handlers.append(console)

    logging.basicConfig(level=level, handlers=handlers)

    # SQL echo is too chatty at DEBUG.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(level)
    logging.getLogger("uvicorn.error").setLevel(level)
    logging.getLogger("uvicorn.access").setLevel(level)
