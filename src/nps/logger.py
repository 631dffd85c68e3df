import logging

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

MAX_VERBOSITY = 4


class Colors:
    RESET = "\033[0m"
    BLACK = "\033[30m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColorFormatter(logging.Formatter):
    COLOR_MAP = {
        TRACE: Colors.BLUE,
        logging.DEBUG: Colors.CYAN,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.RED + Colors.BOLD,
    }

    def format(self, record):
        color = self.COLOR_MAP.get(record.levelno, Colors.RESET)
        message = super().format(record)
        return f"{color}{message}{Colors.RESET}"


def level_for_verbosity(count: int) -> int:
    """Map the number of -d flags to a logging level (0 = errors only)."""
    levels = [logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG, TRACE]
    return levels[min(max(count, 0), MAX_VERBOSITY)]


def setup_logger(name="nps", level=logging.ERROR):
    logger = logging.getLogger(name)
    ch = logging.StreamHandler()
    formatter = ColorFormatter("%(message)s")
    ch.setFormatter(formatter)
    # Prevent adding multiple handlers in case of repeated calls
    if not logger.handlers:
        logger.setLevel(level)
        logger.addHandler(ch)
    return logger


def set_verbosity(count: int, name="nps") -> int:
    level = level_for_verbosity(count)
    logging.getLogger(name).setLevel(level)
    return level
