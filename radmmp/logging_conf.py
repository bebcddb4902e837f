import logging
import sys
import os
from datetime import datetime

loglevel = logging.INFO
log_counter = 0
log_format = '%(asctime)s - %(levelname)s - %(message)s'


class LoggerClass:
    """
    Mixin for anything that wants to report progress.  Provide a logging.Logger to route messages through it, or set
    silent to True to suppress them.  With neither, messages are printed.
    """

    def __init__(self, silent: bool = False, logger: logging.Logger = None):
        self.silent = silent
        self.logger = logger

    def print_msg(self, msg: str, loglvl: int = logging.INFO):
        """
        Route the message to the logger, to print, or nowhere if silent

        Parameters
        ----------
        msg
            message contents as string
        loglvl
            one of the logging enum values, logging.INFO or logging.WARNING as example
        """

        if self.logger is not None:
            if not isinstance(loglvl, int):
                raise ValueError('Log level must be an int (see logging enum), found {}'.format(loglvl))
            self.logger.log(loglvl, msg)
        elif not self.silent:
            print(msg)


class StdErrFilter(logging.Filter):
    """
    only pass WARNING, ERROR and CRITICAL records
    """
    def filter(self, rec):
        return rec.levelno >= logging.WARNING


class StdOutFilter(logging.Filter):
    """
    only pass DEBUG and INFO records
    """
    def filter(self, rec):
        return rec.levelno < logging.WARNING


def return_log_name(deployment_id: str = '', timestamped: bool = False):
    """
    Build the log file name for a processing run, optionally prefixed with the deployment id and suffixed with the
    utc timestamp in seconds.

    Parameters
    ----------
    deployment_id
        deployment identifier, prepended to the name if provided
    timestamped
        if True, appends the utc timestamp to make the name unique

    Returns
    -------
    str
        log file name
    """

    name = 'radmmp_log'
    if deployment_id:
        name = '{}_{}'.format(deployment_id, name)
    if timestamped:
        name = '{}_{}'.format(name, int(datetime.utcnow().timestamp()))
    return name + '.txt'


def _build_handler(handler: logging.Handler, level: int, filt: logging.Filter = None):
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(log_format))
    if filt is not None:
        handler.addFilter(filt)
    return handler


def return_logger(name: str, logfile: str = None):
    """
    Build a new logger for one processing run.  Every call gets its own logger (the name is suffixed with a running
    counter) so that two deployments processed in the same session do not share handlers.

    INFO and DEBUG go to stdout, WARNING and above go to stderr.  If logfile is provided, everything at loglevel is
    also written to that file.  The root logger handlers are cleared, they would otherwise duplicate every message.

    Parameters
    ----------
    name
        identifier used to name the logger instance, ex: 'ctd_eng_deployment'
    logfile
        path to the log file where you want the output driven to

    Returns
    -------
    logging.Logger
        logger for the provided name/logfile
    """

    global log_counter
    logger = logging.getLogger('{}_{}'.format(name, log_counter))
    log_counter += 1
    logger.setLevel(loglevel)

    logger.addHandler(_build_handler(logging.StreamHandler(sys.stdout), loglevel, StdOutFilter()))
    logger.addHandler(_build_handler(logging.StreamHandler(sys.stderr), logging.WARNING, StdErrFilter()))
    if logfile is not None:
        logger.addHandler(_build_handler(logging.FileHandler(logfile), loglevel))

    logging.getLogger().handlers = []
    return logger


def logger_remove_file_handlers(logger: logging.Logger):
    """
    Remove and close all file handlers attached to the logger

    Parameters
    ----------
    logger
        logger instance

    Returns
    -------
    logging.Logger
    """

    for handler in [hndlr for hndlr in logger.handlers if isinstance(hndlr, logging.FileHandler)]:
        logger.removeHandler(handler)
        handler.close()
    return logger


def add_file_handler(logger: logging.Logger, logfile: str, remove_existing: bool = True):
    """
    Drive the logger output to a file as well.  If remove_existing, any file handlers already on the logger are
    removed first.

    Parameters
    ----------
    logger
        logger instance
    logfile
        file path to where you want to save the log output
    remove_existing
        if True, removes all existing file handlers from the log

    Returns
    -------
    logging.Logger
    """

    if remove_existing:
        logger_remove_file_handlers(logger)
    logger.addHandler(_build_handler(logging.FileHandler(logfile), loglevel))
    return logger


def logfile_matches(logger: logging.Logger, logfile: str):
    """
    Return True if one of the logger file handlers writes to logfile
    """

    return any(os.path.normpath(handler.baseFilename) == os.path.normpath(logfile)
               for handler in logger.handlers if isinstance(handler, logging.FileHandler))
