import os

SIZE_UNITS = ('B', 'KB', 'MB', 'GB', 'TB')


def format_size(size_bytes):
    """
    Formats a byte count as a short human readable string, e.g. '12.00 GB'.
    """
    size = float(size_bytes)
    unit = 0
    while size >= 1024 and unit < len(SIZE_UNITS) - 1:
        size /= 1024.0
        unit += 1
    return f"{size:.2f} {SIZE_UNITS[unit]}"


def get_directory_size(directory, logger=None, progress_bar=None):
    """
    Returns the total size in bytes of all files below a directory.

    Unreadable files and sub-directories are logged and left out of the total, so the
    result is a lower bound when the tree is partly inaccessible. A directory that does
    not exist has a size of 0.

    Args:
    - directory (str): The directory to measure.
    - logger: A logging object used for logging warnings.
    - progress_bar (optional): An optional progress bar object for visual progress feedback.

    Returns:
    - int: The number of bytes found.
    """
    if not os.path.isdir(directory):
        return 0

    def on_walk_error(error):
        log_warning(logger, f"Could not read \"{error.filename}\" while measuring \"{directory}\": {error}", progress_bar)

    total_size = 0
    for root, dirs, files in os.walk(directory, onerror=on_walk_error):
        for name in files:
            file_path = os.path.join(root, name)
            try:
                total_size += os.path.getsize(file_path)
            except OSError as e:
                log_warning(logger, f"Could not get size of \"{file_path}\": {e}", progress_bar)
    return total_size


def join_names(names):
    """
    Joins user names for a summary line, coalescing duplicates and sorting them.
    """
    return ', '.join(sorted(set(names), key=str.lower))


def log_debug(logger, message, progress_bar=None):
    """
    Logs a debug message and optionally updates a progress bar with the message.

    Args:
    - logger: The logging object used to log the message.
    - message (str): The message to be logged.
    - progress_bar (optional): A progress bar object that can be updated with the message (optional).
    """
    if progress_bar:
        progress_bar.set_description(message)
    if logger:
        logger.debug(message)


def log_info(logger, message, progress_bar=None):
    """
    Logs an informational message and optionally updates a progress bar with the message.

    This is useful for providing visual feedback to the user along with logging the
    progress or status of a long backup or restore run.

    Args:
    - logger: The logging object used to log the message.
    - message (str): The message to be logged.
    - progress_bar (optional): A progress bar object that can be updated with the message (optional).
    """
    if progress_bar:
        progress_bar.set_description(message)
    if logger:
        logger.info(message)


def log_error(logger, message, e=None, progress_bar=None):
    """
    Logs an error message along with exception details and optionally updates a progress bar.

    Args:
    - logger: The logging object used to log the error.
    - message (str): The error message to be logged.
    - e (Exception): The exception object containing details of the error encountered (optional).
    - progress_bar (optional): A progress bar object that can be updated with the error message (optional).
    """
    if progress_bar:
        progress_bar.set_description(message)
    if logger:
        logger.error(f"{message} {e}" if e is not None else message)


def log_warning(logger, message, progress_bar=None):
    """
    Logs a warning message and optionally updates a progress bar with the message.

    Args:
    - logger: The logging object used to log the warning.
    - message (str): The warning message to be logged.
    - progress_bar (optional): A progress bar object that can be updated with the warning message (optional).
    """
    if progress_bar:
        progress_bar.set_description(message)
    if logger:
        logger.warning(message)
