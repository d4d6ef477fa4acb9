from __future__ import annotations

import logging


def setup_logging(*, environment: str, level: str | None = None) -> None:
    """Configure root logging once.

    Development runs at DEBUG, everything else at INFO unless ``level`` is
    given explicitly. Calling it again is a no-op when handlers already exist.
    """

    root = logging.getLogger()
    if root.handlers:
        return

    env = (environment or "development").lower().strip()
    if level:
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO
    else:
        resolved = logging.DEBUG if env == "development" else logging.INFO

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )
    console = logging.StreamHandler()
    console.setLevel(resolved)
    console.setFormatter(formatter)
    logging.basicConfig(level=resolved, handlers=[console])

    logging.getLogger("uvicorn").setLevel(resolved)
    logging.getLogger("uvicorn.error").setLevel(resolved)
    logging.getLogger("uvicorn.access").setLevel(resolved)
    # SQL echo is far too chatty at DEBUG.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
