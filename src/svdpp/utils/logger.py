import logging
import sys

_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """
    Sets up and returns a stdout logger if no handlers exist yet.

    Parameters:
        name (str): Name of the logger, usually the module ``__name__``.
        level (int): Logging level, INFO by default.

    Returns:
        logging.Logger: Configured logger instance.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)

    logger.propagate = False

    return logger
