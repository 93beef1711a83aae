import logging

from hr_console.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging() -> logging.Logger:
    level = getattr(logging, settings.LOG_LEVEL, logging.INFO)

    logger = logging.getLogger("hr_console")
    logger.setLevel(level)

    # Avoid duplicate console handlers on reload
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(LOG_FORMAT))
        ch.setLevel(level)
        logger.addHandler(ch)

    logger.propagate = False
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    base = logging.getLogger("hr_console")
    if not name:
        return base
    # "hr_console.staging.commit" -> child "staging.commit"
    if name.startswith("hr_console."):
        name = name[len("hr_console."):]
    return base.getChild(name)


logger = setup_logging()
