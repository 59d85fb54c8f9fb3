import logging
import logging.handlers
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

def setup_logging(settings) -> Optional[Path]:
    """Configure root logging; adds a rotating file handler when LOG_PATH is set."""
    level = getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO)
    fmt = logging.Formatter(LOG_FORMAT)

    logger = logging.getLogger()  # root
    logger.setLevel(level)

    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler) for h in logger.handlers):
        console = logging.StreamHandler()
        console.setFormatter(fmt)
        logger.addHandler(console)

    if not settings.LOG_PATH:
        return None

    log_path = Path(settings.LOG_PATH).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
    handler.setFormatter(fmt)
    handler.setLevel(level)

    # avoid duplicate handlers
    if not any(getattr(h, "baseFilename", None) == str(log_path.resolve()) for h in logger.handlers):
        logger.addHandler(handler)

    # also wire uvicorn loggers
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        if handler not in lg.handlers:
            lg.addHandler(handler)

    return log_path
