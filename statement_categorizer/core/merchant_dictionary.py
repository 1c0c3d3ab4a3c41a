"""
Merchant Dictionary Matcher

Looks up a normalized merchant name in a table of known substrings.
Longer (more specific) patterns always win over shorter ones, regardless
of the order the table was loaded in.
"""
from typing import Iterable, List, Optional, Tuple

from ..logging_setup import get_logger
from .merchant_normalizer import strip_accents
from .models import DictionaryEntry, DictionaryMatch

logger = get_logger(__name__)

PARTIAL_MATCH_PENALTY = 0.80
MIN_PARTIAL_WORD_LENGTH = 4

# Built-in table; production deployments load a per-user table from the store
DEFAULT_DICTIONARY: List[DictionaryEntry] = [
    # Regional supermarkets
    DictionaryEntry('TONIN', 'Luiz Tonin Supermercados', '00.000.000/0001-00', 'Alimentação', 0.99),
    DictionaryEntry('MEDEIROS', 'Supermercado Medeiros', '11.111.111/0001-01', 'Alimentação', 0.99),
    DictionaryEntry('RETA', 'Reta Alimentos', '22.222.222/0001-02', 'Alimentação', 0.99),

    # Fuel
    DictionaryEntry('INNOVARE', 'Auto Posto Innovare', '33.333.333/0001-03', 'Transporte', 0.99),
    DictionaryEntry('AUTO POSTO INNOVARE', 'Auto Posto Innovare', '33.333.333/0001-03', 'Transporte', 0.99),

    # Telecom
    DictionaryEntry('CLARO', 'Claro', '44.444.444/0001-04', 'Serviços', 0.99),
    DictionaryEntry('WEBCLIX', 'Webclix', '55.555.555/0001-05', 'Serviços', 0.99),
    DictionaryEntry('VIVO', 'Vivo', '66.666.666/0001-06', 'Serviços', 0.99),
    DictionaryEntry('TIM', 'TIM', '77.777.777/0001-07', 'Serviços', 0.99),

    # Financial services
    DictionaryEntry('BLUE PAY SOLUTIONS', 'Blue Pay Solutions', '88.888.888/0001-08', 'Serviços Financeiros', 0.99),
    DictionaryEntry('BLUE PAY', 'Blue Pay Solutions', '88.888.888/0001-08', 'Serviços Financeiros', 0.99),
    DictionaryEntry('NUBANK', 'Nubank', '99.999.999/0001-09', 'Serviços Financeiros', 0.99),

    # Call centers
    DictionaryEntry('TOSCANA TELEMARKETING', 'Toscana Telemarketing', '10.101.010/0001-10', 'Serviços', 0.98),
    DictionaryEntry('TOSCANA', 'Toscana Telemarketing', '10.101.010/0001-10', 'Serviços', 0.95),

    # Pharmacies
    DictionaryEntry('DROGASIL', 'Drogasil', '20.202.020/0001-20', 'Saúde', 0.99),
    DictionaryEntry('PACHECO', 'Drogaria Pacheco', '30.303.030/0001-30', 'Saúde', 0.99),

    # Ride hailing
    DictionaryEntry('UBER', 'Uber', '40.404.040/0001-40', 'Transporte', 0.99),
    DictionaryEntry('99APP', '99', '50.505.050/0001-50', 'Transporte', 0.99),
    DictionaryEntry('99POP', '99', '50.505.050/0001-50', 'Transporte', 0.99),

    # Delivery
    DictionaryEntry('IFOOD', 'iFood', '60.606.060/0001-60', 'Alimentação', 0.99),

    # National chains
    DictionaryEntry('CARREFOUR', 'Carrefour', None, 'Alimentação', 0.99),
    DictionaryEntry('EXTRA', 'Extra', None, 'Alimentação', 0.99),
    DictionaryEntry('PETROBRAS', 'Petrobras', None, 'Transporte', 0.99),
    DictionaryEntry('SHELL', 'Shell', None, 'Transporte', 0.99),
    DictionaryEntry('IPIRANGA', 'Ipiranga', None, 'Transporte', 0.99),
]


def _key(text: str) -> str:
    return strip_accents(text).upper()


class DictionaryMatcher:
    """
    Matches merchant text against dictionary entries
    """

    def __init__(self,
                 entries: Optional[Iterable[DictionaryEntry]] = None,
                 partial_penalty: float = PARTIAL_MATCH_PENALTY):
        """
        Args:
            entries: Dictionary entries (default: built-in table)
            partial_penalty: Confidence multiplier for per-word partial matches
        """
        self.partial_penalty = partial_penalty
        self.entries: Tuple[DictionaryEntry, ...] = ()
        self.load_entries(DEFAULT_DICTIONARY if entries is None else entries)

    def load_entries(self, entries: Iterable[DictionaryEntry]):
        """Replace the table; entries are kept longest-pattern-first"""
        usable = [e for e in entries if e.pattern_substring and e.pattern_substring.strip()]
        # sorted() is stable, so equal-length patterns keep their load order
        self.entries = tuple(sorted(usable, key=lambda e: len(e.pattern_substring.strip()), reverse=True))
        self._patterns = [_key(e.pattern_substring.strip()) for e in self.entries]

    def __len__(self) -> int:
        return len(self.entries)

    def lookup(self, merchant_text: str) -> Optional[DictionaryMatch]:
        """
        Find the dictionary entry for a merchant

        Args:
            merchant_text: Normalized merchant name (any case)

        Returns:
            DictionaryMatch, or None if neither the exact nor the partial
            stage matched
        """
        text = _key(merchant_text or '')
        if not text.strip():
            return None

        # Stage 1: whole-pattern containment, most specific first
        for entry, pattern in zip(self.entries, self._patterns):
            if pattern in text:
                logger.debug("Dictionary exact match: %r -> %s", merchant_text, entry.canonical_name)
                return DictionaryMatch(
                    name=entry.canonical_name,
                    registry_id=entry.registry_id,
                    category=entry.category,
                    score=entry.confidence,
                )

        # Stage 2: per-word containment in either direction
        words = [w for w in text.split() if len(w) >= MIN_PARTIAL_WORD_LENGTH]
        for word in words:
            for entry, pattern in zip(self.entries, self._patterns):
                if word in pattern or pattern in word:
                    logger.debug("Dictionary partial match: %r -> %s via %r",
                                 merchant_text, entry.canonical_name, word)
                    return DictionaryMatch(
                        name=entry.canonical_name,
                        registry_id=entry.registry_id,
                        category=entry.category,
                        score=entry.confidence * self.partial_penalty,
                        partial=True,
                    )

        return None
