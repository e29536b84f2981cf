import logging
from pathlib import Path
from typing import Dict

import colorlog
from concurrent_log_handler import ConcurrentRotatingFileHandler

FILE_FORMAT = "%(asctime)s.%(msecs)03d {service} %(name)-{width}s: %(levelname)-8s %(message)s"
STDOUT_FORMAT = "%(asctime)s.%(msecs)03d {service} %(name)-{width}s: %(log_color)s%(levelname)-8s%(reset)s %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def initialize_logging(service_name: str, logging_config: Dict, log_path: Path):
    """
    Sets up the root logger for one pool service. Several services may share a log file, the file handler rotates
    it safely across processes.
    """
    width = logging_config.get("name_width", 30)
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    if logging_config.get("log_stdout", False):
        handler = colorlog.StreamHandler()
        handler.setFormatter(
            colorlog.ColoredFormatter(
                STDOUT_FORMAT.format(service=service_name, width=width),
                datefmt=DATE_FORMAT,
                reset=True,
            )
        )
    else:
        log_path.mkdir(parents=True, exist_ok=True)
        handler = ConcurrentRotatingFileHandler(
            str(log_path / logging_config.get("log_filename", "payouts.log")),
            "a",
            maxBytes=20 * 1024 * 1024,
            backupCount=logging_config.get("log_maxfilesrotation", 7),
        )
        handler.setFormatter(logging.Formatter(FILE_FORMAT.format(service=service_name, width=width), DATE_FORMAT))
    root_logger.addHandler(handler)

    level = logging_config.get("log_level", "INFO")
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
