import logging, sys
import os
from .config import get_log_dir

def get_logger(name: str = "scootcare"):
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        fmt = logging.Formatter('%(asctime)s %(levelname)s %(name)s - %(message)s')
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        # file handler for persistent logs
        try:
            log_dir = get_log_dir()
            os.makedirs(log_dir, exist_ok=True)
            fh = logging.FileHandler(os.path.join(log_dir, 'scootcare.log'), encoding='utf-8')
            fh.setFormatter(fmt)
            logger.addHandler(fh)
        except OSError:
            # read-only checkouts still get stdout logging
            logger.warning("File logging disabled; could not open %s", get_log_dir())
        logger.setLevel(logging.INFO)
    return logger
