from decimal import Decimal

import pytest

from statement_categorizer.core.csv_parser import StatementParser, parse_statement_csv


def _write(tmp_path, text, name='extrato.csv'):
    path = tmp_path / name
    path.write_text(text, encoding='utf-8')
    return path


def test_brazilian_semicolon_export(tmp_path):
    path = _write(tmp_path, (
        'Data;Descrição;Valor;Saldo\n'
        '30/01/2025;PAGAMENTO PIX TONIN SUPERMERCADOS;-150,00;1.850,00\n'
        '\n'
        '31/01/2025;TED RECEBIDA JOAO SILVA;R$ 1.000,00;2.850,00\n'
    ))
    records = parse_statement_csv(path, account_ref='conta-1')

    assert len(records) == 2
    assert records[0].date == '2025-01-30'
    assert records[0].description == 'PAGAMENTO PIX TONIN SUPERMERCADOS'
    assert records[0].amount == Decimal('-150.00')
    assert records[0].balance == Decimal('1850.00')
    assert records[0].account_ref == 'conta-1'
    assert records[1].amount == Decimal('1000.00')


def test_english_comma_export(tmp_path):
    path = _write(tmp_path, (
        'Date,Description,Amount\n'
        '2025-01-30,UBER TRIP,-23.90\n'
    ))
    [record] = parse_statement_csv(path)
    assert record.date == '2025-01-30'
    assert record.amount == Decimal('-23.90')
    assert record.balance is None


def test_missing_column(tmp_path):
    path = _write(tmp_path, 'Data;Valor\n30/01/2025;-1,00\n')
    with pytest.raises(ValueError, match='Missing column'):
        parse_statement_csv(path)


def test_bad_date_reports_line(tmp_path):
    path = _write(tmp_path, 'Data;Descricao;Valor\n2025/99/99;X;-1,00\n')
    with pytest.raises(ValueError, match=':2:'):
        parse_statement_csv(path)


@pytest.mark.parametrize('text,expected', [
    ('30/01/2025', '2025-01-30'),
    ('30/01/25', '2025-01-30'),
    ('2025-01-30', '2025-01-30'),
    ('30-01-2025', '2025-01-30'),
])
def test_parse_date(text, expected):
    assert StatementParser().parse_date(text) == expected


def test_fields_past_the_header_are_ignored(tmp_path):
    path = _write(tmp_path, (
        'Data;Descricao;Valor\n'
        '30/01/2025;UBER TRIP;-10,00;EXTRA\n'
        '31/01/2025;PADARIA REAL;-8,50;\n'
    ))
    records = parse_statement_csv(path)
    assert [r.description for r in records] == ['UBER TRIP', 'PADARIA REAL']
    assert records[0].amount == Decimal('-10.00')
