"""Utility functionality for logging.
"""
import os
import sys

import logbook

from snppipeline import utils

LOG_NAME = "snppipeline"

logger = logbook.Logger(LOG_NAME)
logger_cl = logbook.Logger(LOG_NAME + "-commands")

def _is_cl(record, _):
    return record.channel == LOG_NAME + "-commands"

def _not_cl(record, handler):
    return not _is_cl(record, handler)

class CloseableNestedSetup(logbook.NestedSetup):
    def close(self):
        for obj in self.objects:
            if hasattr(obj, "close"):
                obj.close()

def _create_log_handler(config, log_dir=None):
    logbook.set_datetime_format("utc")
    handlers = [logbook.NullHandler()]
    format_str = "".join(["[{record.time:%Y-%m-%dT%H:%MZ}] " if config.get("include_time", True) else "",
                          "{record.message}"])
    if log_dir:
        utils.safe_makedir(log_dir)
        handlers.append(logbook.FileHandler(os.path.join(log_dir, "%s.log" % LOG_NAME),
                                            format_string=format_str, level="INFO",
                                            filter=_not_cl))
        handlers.append(logbook.FileHandler(os.path.join(log_dir, "%s-debug.log" % LOG_NAME),
                                            format_string=format_str, level="DEBUG", bubble=True,
                                            filter=_not_cl))
        handlers.append(logbook.FileHandler(os.path.join(log_dir, "%s-commands.log" % LOG_NAME),
                                            format_string=format_str, level="DEBUG",
                                            filter=_is_cl))
    handlers.append(logbook.StreamHandler(sys.stderr, format_string=format_str, level="INFO",
                                          bubble=True, filter=_not_cl))
    return CloseableNestedSetup(handlers)

def setup_local_logging(config=None, log_dir=None):
    """Setup logging for the run, directing messages to stderr and the run log directory.

    Called once with no log directory at startup so validation and inventory
    messages are visible, then again once the timestamped log directory
    exists. The returned handler should be closed when the run finishes.
    """
    if config is None: config = {}
    handler = _create_log_handler(config, log_dir)
    handler.push_application()
    return handler
