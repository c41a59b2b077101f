import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

FORMAT_STRING = '{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}'


def setup_logging(log_level: str = 'INFO', log_dir: Optional[Path] = None):
    logger.remove()
    logger.add(sys.stderr, format=FORMAT_STRING, level=log_level)
    if not log_dir:
        return
    if not os.path.isdir(log_dir):
        os.makedirs(log_dir, exist_ok=True)
    logger.add(Path(log_dir) / 'pg-backup.log',
               format=FORMAT_STRING,
               rotation='00:00',
               retention='14 days',
               level=log_level,
               backtrace=True,
               diagnose=True)
