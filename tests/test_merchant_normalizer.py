import pytest

from statement_categorizer.core.merchant_normalizer import (
    extract_merchant,
    matching_text,
    normalize,
    normalize_merchant_name,
    slugify,
    strip_accents,
    title_case,
)
from statement_categorizer.core.models import TransactionKind


def test_pix_debit_description():
    merchant = normalize('PAGAMENTO PIX TONIN SUPERMERCADOS 123456', TransactionKind.PIX_DEBIT)
    assert merchant.raw_fragment == 'TONIN SUPERMERCADOS'
    assert merchant.canonical_name == 'Tonin Supermercados'
    assert merchant.slug == 'tonin-supermercados'


def test_pix_code_right_after_prefix_is_removed():
    assert extract_merchant('RECEBIMENTO PIX 98765 MARIA SOUZA', TransactionKind.PIX_CREDIT) == 'MARIA SOUZA'


def test_pix_deb_marker_removed():
    assert extract_merchant('PIX DEB DROGASIL') == 'DROGASIL'


def test_card_purchase_noise_removed():
    assert extract_merchant('COMPRAS NACIONAIS DBR AUT 123456 POSTO SHELL', TransactionKind.CARD_PURCHASE) == 'POSTO SHELL'


def test_amounts_and_documents_removed():
    text = extract_merchant('FARMACIA POPULAR R$ 45,90 12345678000199')
    assert text == 'FARMACIA POPULAR'


def test_transfer_prefix_removed_for_transfers():
    assert extract_merchant('TED RECEBIDA JOAO SILVA', TransactionKind.TRANSFER_IN) == 'JOAO SILVA'
    assert extract_merchant('TRANSFERENCIA PARA MARIA', TransactionKind.TRANSFER_OUT) == 'MARIA'


def test_transfer_prefix_kept_for_other_kinds():
    assert extract_merchant('TED RECEBIDA JOAO SILVA', TransactionKind.OTHER) == 'TED RECEBIDA JOAO SILVA'


@pytest.mark.parametrize('description', [None, '', '   ', '123456', '-45,90'])
def test_degenerate_descriptions_never_raise(description):
    merchant = normalize(description)
    assert merchant.canonical_name == ''
    assert merchant.slug == ''


def test_name_noise_tokens_dropped():
    assert normalize_merchant_name('LOJAS AMERICANAS BRASIL') == 'Americanas'
    assert normalize_merchant_name('CASAS BAHIA BR') == 'Casas Bahia'


def test_title_case_keeps_accents():
    assert title_case('PÃO DE AÇÚCAR') == 'Pão De Açúcar'


def test_slugify():
    assert slugify('Pão de Açúcar') == 'pao-de-acucar'
    assert slugify('  Auto Posto  Innovare!! ') == 'auto-posto-innovare'


def test_strip_accents():
    assert strip_accents('Alimentação Saúde') == 'Alimentacao Saude'


def test_matching_text_is_accent_free_upper():
    assert matching_text(normalize('AÇOUGUE SÃO JOSÉ')) == 'ACOUGUE SAO JOSE'


@pytest.mark.parametrize('description', [
    'PAGAMENTO PIX TONIN SUPERMERCADOS 123456',
    'COMPRA CARTAO DROGARIA PACHECO',
    'LOJAS AMERICANAS BRASIL',
    'Pão de Açúcar',
    'PAGAMENTO BR PIX 1',
    'CAFE SAO BRASIL JOAQUIM',
    'PIX 1234 DEB FARMACIA',
    'LOJA COMPRAS BR NACIONAIS MERCADO',
])
def test_normalizing_a_canonical_name_is_stable(description):
    once = normalize(description)
    twice = normalize(once.canonical_name)
    assert twice.canonical_name == once.canonical_name
    assert twice.slug == once.slug


def test_jargon_joined_by_name_noise_is_stripped():
    assert normalize('PAGAMENTO BR PIX 1').canonical_name == ''
    assert normalize('CAFE SAO BRASIL JOAQUIM').canonical_name == 'Cafe'
