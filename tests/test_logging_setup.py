import logging

from statement_categorizer.logging_setup import _parse_level, get_logger


def test_get_logger_is_namespaced():
    logger = get_logger('statement_categorizer.core.test')
    assert logger.name == 'statement_categorizer.core.test'
    assert logging.getLogger('statement_categorizer').handlers


def test_parse_level():
    assert _parse_level('debug') == logging.DEBUG
    assert _parse_level(logging.WARNING) == logging.WARNING
    assert _parse_level('10') == 10


def test_parse_level_from_env(monkeypatch):
    monkeypatch.setenv('CATEGORIZER_LOG_LEVEL', 'ERROR')
    assert _parse_level(None) == logging.ERROR


def test_unknown_level_defaults_to_info(monkeypatch):
    monkeypatch.delenv('CATEGORIZER_LOG_LEVEL', raising=False)
    assert _parse_level('LOUD') == logging.INFO
