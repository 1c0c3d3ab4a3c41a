"""
Categorization pipeline stages
"""

# Expose main classes for easy imports
from .categorization_orchestrator import CategorizationOrchestrator
from .entity_resolver import InMemoryRegistryResolver
from .merchant_dictionary import DictionaryMatcher
from .merchant_normalizer import normalize
from .reference_data import ReferenceData, StaticDictionaryProvider
from .rule_matcher import RuleMatcher
from .transaction_type import detect_kind

__all__ = [
    'CategorizationOrchestrator',
    'DictionaryMatcher',
    'InMemoryRegistryResolver',
    'ReferenceData',
    'RuleMatcher',
    'StaticDictionaryProvider',
    'detect_kind',
    'normalize',
]
