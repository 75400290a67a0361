import sys
from pathlib import Path
from loguru import logger
import logging


class PropagateHandler(logging.Handler):
    def emit(self, record):
        logging.getLogger(record.name).handle(record)


def setup_logging(name: str, log_root: Path = Path("logs"), level: str = "INFO") -> Path:
    """Send logs to stderr, to <log_root>/<name>/out.log and to stdlib logging."""
    log_dir = log_root / name
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "out.log"
    logger.remove()
    logger.add(sys.stderr, level=level)
    logger.add(log_file, level="DEBUG")
    logger.add(PropagateHandler(), format="{message}", level="DEBUG")
    logger.debug(f"Logging to {log_file}")
    return log_dir
