"""
Activity code (CNAE) to spending category mapping

Prefixes are tested in table order and the first hit wins, so a more
specific prefix has to sit above any broader one that would also match.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class ActivityCodeCategory:
    code_prefix: str
    category: str


ACTIVITY_CODE_CATEGORIES: List[ActivityCodeCategory] = [
    ActivityCodeCategory('47.11', 'Alimentação'),  # supermarkets
    ActivityCodeCategory('47.29', 'Alimentação'),
    ActivityCodeCategory('47.30-1', 'Transporte'),  # fuel
    ActivityCodeCategory('47.30', 'Transporte'),
    ActivityCodeCategory('47.32', 'Saúde'),
    ActivityCodeCategory('49.39', 'Transporte'),  # ride hailing / other passenger transport
    ActivityCodeCategory('61.', 'Serviços'),  # telecom
    ActivityCodeCategory('64.', 'Serviços Financeiros'),
    ActivityCodeCategory('82.20', 'Serviços'),  # call centers
    ActivityCodeCategory('47.71', 'Saúde'),  # pharmacies
    ActivityCodeCategory('56.1', 'Alimentação'),  # restaurants
    ActivityCodeCategory('56.2', 'Alimentação'),  # catering / delivery
    ActivityCodeCategory('47.61', 'Compras'),
    ActivityCodeCategory('47.42', 'Compras'),
    ActivityCodeCategory('68.', 'Casa'),
    ActivityCodeCategory('85.', 'Educação'),
    ActivityCodeCategory('86.', 'Saúde'),
    ActivityCodeCategory('62.', 'Serviços'),
]


def category_for_activity_code(code: Optional[str],
                               table: Optional[Iterable[ActivityCodeCategory]] = None) -> Optional[str]:
    """
    Map a registry activity code to a category

    Args:
        code: Activity code such as '47.11-3-01' (None/empty allowed)
        table: Prefix table (default: ACTIVITY_CODE_CATEGORIES)

    Returns:
        Category of the first matching prefix, or None
    """
    if not code:
        return None
    for entry in (ACTIVITY_CODE_CATEGORIES if table is None else table):
        if code.startswith(entry.code_prefix):
            return entry.category
    return None
