import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional


class _ThirdPartyNoiseFilter(logging.Filter):
    """Keep tms logs, let other libraries through at WARNING and above."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith("tms"):
            return True
        # uvicorn's own access/startup lines are useful on the console
        if record.name.startswith("uvicorn"):
            return record.levelno >= logging.INFO
        return record.levelno >= logging.WARNING


def setup_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """
    Configure the root logger.

    - Console handler on stderr at ``level``, third-party noise filtered
    - Daily rotated file ``tms.log`` in ``log_dir`` (when given) at INFO

    Safe to call more than once; previous handlers are replaced.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(level.upper())
    ch.setFormatter(fmt)
    ch.addFilter(_ThirdPartyNoiseFilter())
    root.addHandler(ch)

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        fh = TimedRotatingFileHandler(
            str(path / "tms.log"), when="midnight", backupCount=14, encoding="utf-8"
        )
        fh.setLevel(logging.INFO)
        fh.setFormatter(fmt)
        root.addHandler(fh)

    logging.captureWarnings(True)
