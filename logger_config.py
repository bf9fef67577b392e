import logging
import os

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(module)s - %(message)s'

def add_file_handler(logger, log_directory):
    """
    Adds an INFO file handler writing to '<log_directory>/<logger name>.log'.
    Returns False, after a console warning, if the file cannot be opened.
    """
    try:
        os.makedirs(log_directory, exist_ok=True)
        file_handler = logging.FileHandler(os.path.join(log_directory, logger.name + '.log'), encoding='utf-8')
    except OSError as e:
        logger.warning(f"Could not open log file in \"{log_directory}\", logging to console only: {e}")
        return False
    file_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
    file_handler.setLevel(logging.INFO)
    logger.addHandler(file_handler)
    return True

def setup_custom_logger(name, log_directory='.', level=logging.INFO):
    formatter = logging.Formatter(fmt=LOG_FORMAT)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Calling this twice for the same name must not duplicate every line
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.DEBUG)
    logger.addHandler(console_handler)

    # None means console only, a file handler can be added once the log location is known
    if log_directory is not None:
        add_file_handler(logger, log_directory)

    return logger
