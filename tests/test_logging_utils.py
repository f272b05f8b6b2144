import logging
from unittest.mock import patch

from wpvet.logging_utils import configure_logging, get_suppressed_snapshot, log_suppressed


def test_log_suppressed_samples_then_throttles(caplog):
    logger = logging.getLogger('wpvet.test')
    with caplog.at_level(logging.DEBUG, logger='wpvet.test'):
        counts = [log_suppressed(logger, ValueError('x'), 'fetch:conn', sample=2) for _ in range(5)]
    assert counts == [1, 2, 3, 4, 5]
    assert len([r for r in caplog.records if r.name == 'wpvet.test']) == 2
    snapshot = get_suppressed_snapshot()
    assert snapshot[f'wpvet.test:fetch:conn:{logging.DEBUG}']['count'] == 5


def test_log_suppressed_emits_after_cooldown(caplog):
    logger = logging.getLogger('wpvet.test')
    with caplog.at_level(logging.DEBUG, logger='wpvet.test'):
        with patch('wpvet.logging_utils.time') as clock:
            clock.time.side_effect = [100.0, 101.0, 500.0]
            for _ in range(3):
                log_suppressed(logger, ValueError('x'), 'ctx', sample=1, cooldown=60.0)
    messages = [r.getMessage() for r in caplog.records if r.name == 'wpvet.test']
    assert len(messages) == 2
    assert messages[-1].endswith('(suppressed=2)')


def test_configure_logging_level(monkeypatch):
    monkeypatch.delenv('WPVET_LOG_FILE', raising=False)
    assert configure_logging('debug') == logging.DEBUG
    assert configure_logging('nonsense') == logging.INFO
    assert logging.getLogger('urllib3').level == logging.WARNING


def test_configure_logging_file(monkeypatch, tmp_path):
    log_file = tmp_path / 'wpvet.log'
    root = logging.getLogger()
    before = list(root.handlers)
    try:
        configure_logging('INFO', str(log_file))
        added = [h for h in root.handlers if h not in before]
        assert len(added) == 1
        assert added[0].baseFilename == str(log_file)
    finally:
        for h in root.handlers[:]:
            if h not in before:
                root.removeHandler(h)
                h.close()
