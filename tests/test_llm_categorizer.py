import json
from decimal import Decimal
from types import SimpleNamespace

import pytest

from statement_categorizer.config import load_taxonomy
from statement_categorizer.core.llm_categorizer import LLMCategorizer
from statement_categorizer.core.models import CategorizedRecord, Direction, TransactionKind


class FakeMessages:
    """Returns queued responses; records every prompt"""

    def __init__(self, responses):
        self.responses = list(responses)
        self.prompts = []

    def create(self, **kwargs):
        self.prompts.append(kwargs['messages'][0]['content'])
        text = self.responses.pop(0)
        return SimpleNamespace(content=[SimpleNamespace(text=text)])


def _client(*responses):
    return SimpleNamespace(messages=FakeMessages(responses))


def _record(description, evidence, category='Outros', confidence=0.4):
    return CategorizedRecord(
        date='2025-01-30',
        raw_description=description,
        merchant_raw=description,
        merchant_normalized=description.title(),
        merchant_slug=description.lower().replace(' ', '-'),
        kind=TransactionKind.OTHER,
        direction=Direction.OUTFLOW,
        amount=Decimal('-10'),
        category=category,
        registry_id=None,
        canonical_merchant_name=description.title(),
        confidence=confidence,
        evidence_chain=list(evidence),
    )


@pytest.fixture
def taxonomy():
    return load_taxonomy()


def test_disabled_without_api_key(taxonomy, monkeypatch):
    monkeypatch.delenv('ANTHROPIC_API_KEY', raising=False)
    llm = LLMCategorizer(taxonomy)
    records = [_record('LOJA DO ZE', ['fallback'])]
    assert not llm.enabled
    assert llm.refine_fallbacks(records) == records


def test_refines_only_fallback_records(taxonomy):
    client = _client(json.dumps([{'txn': 1, 'category': 'Vestuário', 'confidence': 0.95}]))
    llm = LLMCategorizer(taxonomy, client=client, pause_seconds=0)
    records = [
        _record('TONIN', ['dictionary'], category='Alimentação', confidence=0.99),
        _record('BOUTIQUE DA ANA', ['fallback']),
    ]

    refined = llm.refine_fallbacks(records)

    assert refined[0] is records[0]
    assert refined[1].category == 'Vestuário'
    assert refined[1].confidence == pytest.approx(0.85)
    assert refined[1].evidence_chain == ['fallback', 'llm']
    # inputs untouched
    assert records[1].category == 'Outros'
    assert records[1].evidence_chain == ['fallback']
    assert len(client.messages.prompts) == 1
    assert 'BOUTIQUE DA ANA' in client.messages.prompts[0]


def test_low_llm_confidence_never_lowers_existing(taxonomy):
    client = _client('[{"txn": 1, "category": "Casa", "confidence": 0.2}]')
    llm = LLMCategorizer(taxonomy, client=client, pause_seconds=0)
    [refined] = llm.refine_fallbacks([_record('CONDOMINIO', ['fallback'])])
    assert refined.category == 'Casa'
    assert refined.confidence == pytest.approx(0.4)


def test_invalid_category_is_ignored(taxonomy):
    client = _client('```json\n[{"txn": 1, "category": "Pets", "confidence": 0.9}]\n```')
    llm = LLMCategorizer(taxonomy, client=client, pause_seconds=0)
    [refined] = llm.refine_fallbacks([_record('PET SHOP', ['fallback'])])
    assert refined.category == 'Outros'
    assert refined.evidence_chain == ['fallback']


def test_unparseable_chunk_is_split_and_retried(taxonomy):
    client = _client(
        'not json at all',
        '[{"txn": 1, "category": "Casa", "confidence": 0.7}]',
        '[{"txn": 1, "category": "Saúde", "confidence": 0.7}]',
    )
    llm = LLMCategorizer(taxonomy, client=client, pause_seconds=0)
    refined = llm.refine_fallbacks([_record('A', ['fallback']), _record('B', ['fallback'])])
    assert [r.category for r in refined] == ['Casa', 'Saúde']
    assert len(client.messages.prompts) == 3


def test_records_are_sent_in_chunks(taxonomy):
    client = _client(
        '[{"txn": 1, "category": "Casa", "confidence": 0.6}, {"txn": 2, "category": "Casa", "confidence": 0.6}]',
        '[{"txn": 1, "category": "Compras", "confidence": 0.6}]',
    )
    llm = LLMCategorizer(taxonomy, client=client, chunk_size=2, pause_seconds=0)
    refined = llm.refine_fallbacks([_record(name, ['fallback']) for name in ('A', 'B', 'C')])
    assert [r.category for r in refined] == ['Casa', 'Casa', 'Compras']


def test_missing_answers_leave_records_unchanged(taxonomy):
    client = _client('[{"txn": 2, "category": "Casa", "confidence": 0.6}]')
    llm = LLMCategorizer(taxonomy, client=client, pause_seconds=0)
    refined = llm.refine_fallbacks([_record('A', ['fallback']), _record('B', ['fallback'])])
    assert [r.category for r in refined] == ['Outros', 'Casa']


def test_nothing_to_refine_makes_no_call(taxonomy):
    client = _client()
    llm = LLMCategorizer(taxonomy, client=client)
    records = [_record('TONIN', ['dictionary'], category='Alimentação', confidence=0.99)]
    assert llm.refine_fallbacks(records) == records
    assert client.messages.prompts == []
