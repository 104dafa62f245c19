import logging
from multiprocessing import Value

logger = logging.getLogger(__name__)

total_sent = Value('q', 0)
total_received = Value('q', 0)

# from https://stackoverflow.com/a/43750422
def human_size(bytes, units=[' bytes','KB','MB','GB','TB', 'PB', 'EB']):
    """ Returns a human readable string representation of bytes """
    return str(bytes) + units[0] if bytes < 1024 else human_size(bytes>>10, units[1:])

def increase_total_sent(by: int):
    with total_sent.get_lock():
        total_sent.value += by

def increase_total_received(by: int):
    with total_received.get_lock():
        total_received.value += by

def log_stats():
    logger.info(f"total_sent = {human_size(total_sent.value)}")
    logger.info(f"total_received = {human_size(total_received.value)}")
