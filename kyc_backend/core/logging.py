import logging
import os

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logging.basicConfig(
    level=logging.INFO,
    format=LOG_FORMAT
)

def get_logger(name):
    return logging.getLogger(name)


def configure_logging(level: str = "INFO", log_dir: str | None = "logs") -> None:
    """
    Sets the root level and adds the two local log files: every record goes to
    combined.log, ERROR and above also go to errors.log. Console output comes
    from the basicConfig handler above.

    Safe to call more than once; file handlers are only attached the first time
    for a given directory.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    if not log_dir:
        return

    os.makedirs(log_dir, exist_ok=True)
    combined_path = os.path.abspath(os.path.join(log_dir, "combined.log"))
    errors_path = os.path.abspath(os.path.join(log_dir, "errors.log"))

    existing = {
        getattr(handler, "baseFilename", None)
        for handler in root.handlers
    }
    formatter = logging.Formatter(LOG_FORMAT)

    if combined_path not in existing:
        combined_handler = logging.FileHandler(combined_path, encoding="utf-8")
        combined_handler.setFormatter(formatter)
        root.addHandler(combined_handler)

    if errors_path not in existing:
        errors_handler = logging.FileHandler(errors_path, encoding="utf-8")
        errors_handler.setLevel(logging.ERROR)
        errors_handler.setFormatter(formatter)
        root.addHandler(errors_handler)
