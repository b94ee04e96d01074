"""Core helper utility functions for the application."""
import time


def epoch_now():
    """Return the current epoch time as an integer."""
    return int(time.time())


def age_expired(last_epoch, max_age, epoch=None):
    """Check if a record stamped at last_epoch is older than max_age.

    Args:
        last_epoch: Timestamp of the last update
        max_age: Maximum age in seconds
        epoch: Current epoch time (default: current time)

    Returns:
        bool: True if the record is strictly older than the allowed age
    """
    if epoch is None:
        epoch = epoch_now()
    return last_epoch < epoch - max_age
