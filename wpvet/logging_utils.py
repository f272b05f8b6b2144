import logging
import os
import threading
import time
from logging.handlers import RotatingFileHandler
from typing import Dict, Optional, Tuple

_SuppressionKey = Tuple[str, str, int]
_SuppressionState = Dict[str, float | int]

_SUPPRESSION_LOCK = threading.Lock()
_SUPPRESSION_STATE: Dict[_SuppressionKey, _SuppressionState] = {}

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def configure_logging(level_name: Optional[str] = None, log_file: Optional[str] = None) -> int:
    """Initialise root logging for the service and the CLI.

    ``level_name`` defaults to ``WPVET_LOG_LEVEL`` (INFO). When ``log_file``
    or ``WPVET_LOG_FILE`` is set a rotating file handler is attached, sized by
    ``WPVET_LOG_MAX_BYTES`` / ``WPVET_LOG_BACKUP_COUNT``.
    Returns the numeric level applied.
    """
    level_name = (level_name or os.environ.get('WPVET_LOG_LEVEL', 'INFO')).upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
    log_file = log_file or os.environ.get('WPVET_LOG_FILE')
    if log_file:
        try:
            max_bytes = int(os.environ.get('WPVET_LOG_MAX_BYTES', str(5 * 1024 * 1024)))
            backup = int(os.environ.get('WPVET_LOG_BACKUP_COUNT', '5'))
        except ValueError:
            max_bytes, backup = 5 * 1024 * 1024, 5
        try:
            fh = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup)
        except OSError as exc:
            logging.getLogger('wpvet').warning('failed attaching RotatingFileHandler for %s: %s', log_file, exc)
        else:
            fh.setLevel(level)
            fh.setFormatter(logging.Formatter(LOG_FORMAT))
            logging.getLogger().addHandler(fh)
            logging.getLogger('wpvet').info(
                'RotatingFileHandler attached path=%s max_bytes=%d backups=%d',
                log_file, max_bytes, backup)
    # urllib3 logs every connection at DEBUG; keep it quiet unless asked for
    logging.getLogger('urllib3').setLevel(max(level, logging.WARNING))
    return level


def log_suppressed(
    logger: logging.Logger,
    exc: Exception,
    context: str,
    *,
    level: int = logging.DEBUG,
    sample: int = 5,
    cooldown: float = 120.0,
) -> int:
    """Emit a throttled log entry for repeated soft-failures.

    Parameters
    ----------
    logger: logging.Logger
        Target logger to write into.
    exc: Exception
        Exception instance that triggered the suppression log.
    context: str
        Human-readable identifier so we can aggregate per-failure site.
    level: int
        Logging level; defaults to ``DEBUG``.
    sample: int
        Emit the first ``sample`` occurrences before throttling kicks in.
    cooldown: float
        Minimum seconds between emissions once the initial sample budget is
        exhausted.

    Returns
    -------
    int
        Total number of times this ``context`` has requested logging (including
        suppressed writes).
    """
    now = time.time()
    key: _SuppressionKey = (logger.name, context, level)
    with _SUPPRESSION_LOCK:
        state = _SUPPRESSION_STATE.setdefault(key, {'count': 0, 'last_emit': 0.0})
        state['count'] = int(state['count']) + 1
        count = int(state['count'])
        last_emit = float(state.get('last_emit', 0.0))
        should_emit = count <= sample or (now - last_emit) >= cooldown
        if should_emit:
            state['last_emit'] = now
    if should_emit:
        logger.log(level, '%s err=%s (suppressed=%d)', context, exc, max(0, count - 1))
    return count


def get_suppressed_snapshot() -> Dict[str, Dict[str, float | int]]:
    """Return a shallow copy of suppression counters for observability."""
    with _SUPPRESSION_LOCK:
        snapshot: Dict[str, Dict[str, float | int]] = {}
        for (logger_name, context, level), state in _SUPPRESSION_STATE.items():
            key = f'{logger_name}:{context}:{level}'
            snapshot[key] = {
                'count': int(state.get('count', 0)),
                'last_emit': float(state.get('last_emit', 0.0)),
            }
    return snapshot


def reset_suppressed_state() -> None:
    """Clear suppression counters. Useful for unit tests."""
    with _SUPPRESSION_LOCK:
        _SUPPRESSION_STATE.clear()
