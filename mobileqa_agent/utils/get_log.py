import logging
import os
from datetime import datetime
from logging import WARNING, FileHandler
from logging.handlers import TimedRotatingFileHandler

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] [%(filename)s (%(funcName)s:%(lineno)d)] - %(message)s"


class GetLog:
    logger = None
    log_folder = None
    _handlers = []

    @classmethod
    def get_log(cls, level="info", log_dir="./logs"):
        """Configure the root logger once per process and return it.

        Each run logs into its own ``<log_dir>/<run timestamp>`` folder:
        ``log.log`` rotates at midnight, ``error.log`` repeats warnings and
        errors, and the console gets the same records as ``log.log``.

        Args:
            level (str): Log level name, unknown names fall back to "info"
            log_dir (str): Parent folder of the per-run log folders
        """
        if cls.logger is not None:
            return cls.logger

        run_stamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        cls.log_folder = os.path.join(log_dir, run_stamp)
        os.makedirs(cls.log_folder, exist_ok=True)

        # Artifact sinks group the JSON outputs of a run under the same stamp
        os.environ["MOBILEQA_TIMESTAMP"] = run_stamp

        log_level = LOG_LEVELS.get(str(level).lower(), logging.INFO)
        formatter = logging.Formatter(LOG_FORMAT)

        cls._handlers = [
            (TimedRotatingFileHandler(
                filename=os.path.join(cls.log_folder, "log.log"),
                when="midnight",
                backupCount=3,
                encoding="utf-8",
            ), log_level),
            (FileHandler(filename=os.path.join(cls.log_folder, "error.log"), encoding="utf-8"), WARNING),
            (logging.StreamHandler(), log_level),
        ]

        cls.logger = logging.getLogger()
        cls.logger.setLevel(log_level)
        for handler, handler_level in cls._handlers:
            handler.setLevel(handler_level)
            handler.setFormatter(formatter)
            cls.logger.addHandler(handler)

        return cls.logger

    @classmethod
    def reset(cls):
        """Detach and close the handlers installed by ``get_log``."""
        if cls.logger is not None:
            for handler, _ in cls._handlers:
                cls.logger.removeHandler(handler)
                handler.close()
        cls._handlers = []
        cls.logger = None
        cls.log_folder = None
