import logging
from pathlib import Path
from typing import Union


def setup_logger(
    name: str = "people_counter",
    log_dir: Union[str, Path, None] = None,
    level: Union[int, str] = logging.INFO,
) -> logging.Logger:
    """
    Configure the package logger once: console output, plus run.log
    inside log_dir when one is given.
    """
    logger = logging.getLogger(name)
    numeric_level = getattr(logging, str(level).upper(), level)
    logger.setLevel(numeric_level)

    # Prevent duplicate handlers across re-runs.
    if logger.handlers:
        return logger

    fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler()
    ch.setLevel(numeric_level)
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_dir / "run.log", encoding="utf-8")
        fh.setLevel(numeric_level)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger
