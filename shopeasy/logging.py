import logging
import logging.config
from pathlib import Path

LOGGING_CONF = Path(__file__).resolve().parent.parent / "logging.conf"

if LOGGING_CONF.exists():
    logging.config.fileConfig(LOGGING_CONF, disable_existing_loggers=False)
else:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")


logger = logging.getLogger("shopeasy")
