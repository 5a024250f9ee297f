"""
Logging setup for AD Identity Mapper.

Installs root handlers from the ``logging`` configuration section and keeps
directory passwords and bind credentials out of every record they emit.
"""

import os
import re
import logging
import logging.handlers
from typing import Any, Dict, List, Optional

LOG_FILE_NAME = 'ad_identity.log'


class SensitiveDataFilter(logging.Filter):
    """Filter to scrub sensitive data from log messages."""

    SENSITIVE_KEYWORDS = [
        'unicodePwd', 'userPassword', '__PASSWORD__', 'bind_password',
        'password', 'secret', 'credential', 'pwd', 'token'
    ]

    def filter(self, record):
        """Filter out sensitive data from log records."""
        if hasattr(record, 'msg'):
            # %-style arguments are merged first so they get scrubbed too
            msg = record.getMessage() if record.args else str(record.msg)

            for keyword in self.SENSITIVE_KEYWORDS:
                # key=value
                msg = re.sub(rf'({keyword}\s*=\s*)[^\s,}}\]]+(\s|,|$)', r'\1****\2',
                             msg, flags=re.IGNORECASE)
                # 'key': 'value' in dict reprs
                msg = re.sub(rf'(["\']{keyword}["\']\s*:\s*["\'])[^"\']*(["\'])', r'\1****\2',
                             msg, flags=re.IGNORECASE)
                # 'key': [b'...'] attribute value lists
                msg = re.sub(rf'(["\']{keyword}["\']\s*:\s*)\[[^\]]*\]', r'\1[****]',
                             msg, flags=re.IGNORECASE)

            record.msg = msg
            record.args = None

        return True


def setup_logging(config: Optional[Dict[str, Any]]) -> List[logging.Handler]:
    """
    Replace the root logger's handlers according to the logging section.

    A file handler is installed when ``log_dir`` is set, rotating at midnight
    and keeping ``retention_days`` old files unless ``rotation`` is ``none``.
    A console handler is installed when ``console_output`` is true.

    Args:
        config: The ``logging`` section of the configuration

    Returns:
        The handlers installed on the root logger
    """
    logging_config = config or {}
    level = getattr(logging, str(logging_config.get('level', 'INFO')).upper(), logging.INFO)
    console_level = getattr(logging, str(logging_config.get('console_level', 'WARNING')).upper(),
                            logging.WARNING)

    sensitive_filter = SensitiveDataFilter()
    handlers = []

    log_dir = logging_config.get('log_dir')
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, LOG_FILE_NAME)
        if str(logging_config.get('rotation', 'daily')).lower() in ('daily', 'midnight'):
            file_handler = logging.handlers.TimedRotatingFileHandler(
                log_file, when='midnight', backupCount=logging_config.get('retention_days', 7),
                encoding='utf-8'
            )
        else:
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        handlers.append(file_handler)

    if logging_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(console_level)
        console_handler.setFormatter(logging.Formatter('%(asctime)s [%(levelname)s] %(message)s',
                                                       datefmt='%H:%M:%S'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    root_logger.setLevel(level)
    for handler in handlers:
        handler.addFilter(sensitive_filter)
        root_logger.addHandler(handler)

    logging.getLogger(__name__).info(f"Logging configured: level={logging.getLevelName(level)}, "
                                     f"dir={log_dir}, console={bool(logging_config.get('console_output', True))}")
    return handlers
