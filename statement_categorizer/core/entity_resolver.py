"""
Registry Entity Resolver

Resolves an uncertain merchant name to a known company in the business
registry using Jaro-Winkler name similarity.

Resolvers share one narrow interface (`resolve_by_name`) so the
orchestrator can use an in-memory table or a store-backed registry
interchangeably.
"""
from typing import Iterable, List, Optional, Protocol

from ..logging_setup import get_logger
from .models import RegistryEntity, RegistryMatch

logger = get_logger(__name__)

SIMILARITY_THRESHOLD = 0.75
PREFIX_SCALE = 0.1
MAX_PREFIX = 4

DEFAULT_REGISTRY: List[RegistryEntity] = [
    # Supermarkets
    RegistryEntity('00.000.000/0001-00', 'Luiz Tonin Supermercados', 'Luiz Tonin Ltda', '47.11-3-01'),
    RegistryEntity('11.111.111/0001-01', 'Supermercado Medeiros', 'Medeiros Comércio Ltda', '47.11-3-01'),
    RegistryEntity('22.222.222/0001-02', 'Reta Alimentos', 'Reta Comércio e Distribuição Ltda', '47.11-3-01'),

    # Fuel
    RegistryEntity('33.333.333/0001-03', 'Auto Posto Innovare', 'Posto Innovare Ltda', '47.30-1-00'),

    # Telecom
    RegistryEntity('44.444.444/0001-04', 'Claro S.A.', 'Claro S.A.', '61.41-7-00'),
    RegistryEntity('55.555.555/0001-05', 'Webclix Telecom', 'Webclix Provedor de Internet Ltda', '61.41-7-00'),
    RegistryEntity('66.666.666/0001-06', 'Vivo S.A.', 'Telefônica Brasil S.A.', '61.41-7-00'),
    RegistryEntity('77.777.777/0001-07', 'TIM S.A.', 'TIM S.A.', '61.41-7-00'),

    # Financial services
    RegistryEntity('88.888.888/0001-08', 'Blue Pay Solutions', 'Blue Pay Solutions Ltda', '64.99-9-99'),
    RegistryEntity('99.999.999/0001-09', 'Nubank', 'Nu Pagamentos S.A.', '64.22-6-00'),

    # Call centers
    RegistryEntity('10.101.010/0001-10', 'Toscana Telemarketing', 'Toscana Telemarketing e Serviços S.A.', '82.20-2-00'),

    # Pharmacies
    RegistryEntity('20.202.020/0001-20', 'Drogasil', 'Drogasil S.A.', '47.71-7-01'),
    RegistryEntity('30.303.030/0001-30', 'Drogaria Pacheco', 'Drogaria Pacheco S.A.', '47.71-7-01'),

    # Apps
    RegistryEntity('40.404.040/0001-40', 'Uber do Brasil', 'Uber do Brasil Tecnologia Ltda', '49.39-1-03'),
    RegistryEntity('50.505.050/0001-50', '99', '99 Tecnologia Ltda', '49.39-1-03'),
    RegistryEntity('60.606.060/0001-60', 'iFood', 'Movile Internet Móvel S.A.', '56.20-1-00'),
]


def jaro(a: str, b: str) -> float:
    """
    Jaro similarity.

    Characters match when equal and no further apart than
    max(len(a), len(b)) // 2 - 1; half the out-of-order matches count as
    transpositions.
    """
    if not a or not b:
        return 0.0

    window = max(len(a), len(b)) // 2 - 1
    a_flags = [False] * len(a)
    b_flags = [False] * len(b)
    matches = 0

    for i, ch in enumerate(a):
        low = max(0, i - window)
        high = min(i + window + 1, len(b))
        for j in range(low, high):
            if not b_flags[j] and b[j] == ch:
                a_flags[i] = b_flags[j] = True
                matches += 1
                break

    if not matches:
        return 0.0

    transpositions = 0
    k = 0
    for i, ch in enumerate(a):
        if a_flags[i]:
            while not b_flags[k]:
                k += 1
            if ch != b[k]:
                transpositions += 1
            k += 1
    transpositions /= 2

    return (matches / len(a) + matches / len(b) + (matches - transpositions) / matches) / 3


def jaro_winkler(a: str, b: str) -> float:
    """Jaro similarity plus a common-prefix bonus (prefix capped at 4)"""
    score = jaro(a, b)
    prefix = 0
    for x, y in zip(a[:MAX_PREFIX], b[:MAX_PREFIX]):
        if x != y:
            break
        prefix += 1
    return score + prefix * PREFIX_SCALE * (1 - score)


def best_registry_match(name: str,
                        entities: Iterable[RegistryEntity],
                        threshold: float = SIMILARITY_THRESHOLD) -> Optional[RegistryMatch]:
    """
    Exhaustively score every entity and keep the best one.

    Each entity scores the max of its display-name and legal-name
    similarity; the best is returned only when it reaches `threshold`.
    """
    query = (name or '').upper()
    if not query.strip():
        return None

    best: Optional[RegistryMatch] = None
    for entity in entities:
        score = max(
            jaro_winkler(query, (entity.display_name or '').upper()),
            jaro_winkler(query, (entity.legal_name or '').upper()),
        )
        if best is None or score > best.score:
            best = RegistryMatch(entity=entity, score=score)

    if best is not None and best.score >= threshold:
        logger.debug("Registry match: %r -> %s (%.3f)", name, best.display_name, best.score)
        return best
    return None


class RegistryResolver(Protocol):
    """Anything that can resolve a merchant name to a registry entity"""

    def resolve_by_name(self, name: str) -> Optional[RegistryMatch]:
        ...


class InMemoryRegistryResolver:
    """
    Resolves names against a static list of registry entities
    """

    def __init__(self,
                 entities: Optional[Iterable[RegistryEntity]] = None,
                 threshold: float = SIMILARITY_THRESHOLD):
        self.entities = tuple(DEFAULT_REGISTRY if entities is None else entities)
        self.threshold = threshold

    def __len__(self) -> int:
        return len(self.entities)

    def resolve_by_name(self, name: str) -> Optional[RegistryMatch]:
        return best_registry_match(name, self.entities, self.threshold)
