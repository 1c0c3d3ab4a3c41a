import pytest

from statement_categorizer.core.merchant_dictionary import DEFAULT_DICTIONARY, DictionaryMatcher
from statement_categorizer.core.models import DictionaryEntry


@pytest.fixture
def matcher():
    return DictionaryMatcher()


def test_exact_hit(matcher):
    hit = matcher.lookup('TONIN SUPERMERCADOS')
    assert hit.name == 'Luiz Tonin Supermercados'
    assert hit.category == 'Alimentação'
    assert hit.registry_id == '00.000.000/0001-00'
    assert hit.score == pytest.approx(0.99)
    assert not hit.partial


def test_lookup_is_case_and_accent_insensitive(matcher):
    assert matcher.lookup('Drogaria Pacheco').name == 'Drogaria Pacheco'


def test_longest_pattern_wins(matcher):
    hit = matcher.lookup('TOSCANA TELEMARKETING')
    assert hit.score == pytest.approx(0.98)

    hit = matcher.lookup('TOSCANA CENTRAL')
    assert hit.score == pytest.approx(0.95)


def test_longest_pattern_wins_regardless_of_load_order():
    entries = [
        DictionaryEntry('BLUE', 'Blue Generic', None, 'Outros', 0.99),
        DictionaryEntry('BLUE PAY', 'Blue Pay Solutions', None, 'Serviços Financeiros', 0.99),
    ]
    matcher = DictionaryMatcher(entries)
    assert matcher.lookup('BLUE PAY').name == 'Blue Pay Solutions'
    assert DictionaryMatcher(list(reversed(entries))).lookup('BLUE PAY').name == 'Blue Pay Solutions'


def test_partial_word_match_is_penalised(matcher):
    hit = matcher.lookup('POSTO CENTRAL')
    assert hit.partial
    assert hit.name == 'Auto Posto Innovare'
    assert hit.score == pytest.approx(0.99 * 0.80)


def test_short_words_do_not_partially_match(matcher):
    assert matcher.lookup('XYZ ABC') is None


def test_miss(matcher):
    assert matcher.lookup('XYZ UNKNOWN MERCHANT 000') is None


@pytest.mark.parametrize('text', ['', '   ', None])
def test_empty_text(matcher, text):
    assert matcher.lookup(text) is None


def test_blank_patterns_are_ignored():
    matcher = DictionaryMatcher([
        DictionaryEntry('  ', 'Nothing', None, 'Outros'),
        DictionaryEntry('ACME', 'Acme', None, 'Compras'),
    ])
    assert len(matcher) == 1
    assert matcher.lookup('ANYTHING AT ALL') is None


def test_custom_penalty():
    matcher = DictionaryMatcher([DictionaryEntry('PADARIA REAL', 'Padaria Real', None, 'Alimentação', 1.0)],
                                partial_penalty=0.5)
    assert matcher.lookup('PADARIA NOVA').score == pytest.approx(0.5)


def test_default_table_loaded():
    assert len(DictionaryMatcher()) == len(DEFAULT_DICTIONARY)
