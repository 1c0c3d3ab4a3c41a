"""
Reference data for a classification pass

Bundles every lookup table the pipeline reads (dictionary, registry,
activity codes, rules, keyword weights) into one explicitly constructed
snapshot. Dictionary sources are swappable behind `DictionaryProvider`;
registries behind `RegistryResolver`.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from ..config import PipelineConfig
from ..logging_setup import get_logger
from .activity_codes import ACTIVITY_CODE_CATEGORIES, ActivityCodeCategory
from .entity_resolver import InMemoryRegistryResolver, RegistryResolver
from .errors import ReferenceDataError
from .keyword_scorer import KEYWORD_WEIGHTS, KeywordWeight
from .merchant_dictionary import DEFAULT_DICTIONARY, DictionaryMatcher
from .models import DictionaryEntry
from .rule_matcher import RuleMatcher

logger = get_logger(__name__)


class DictionaryProvider(Protocol):
    """Source of dictionary entries for a scope (user, tenant, ...)"""

    def load_dictionary_entries(self, scope_key: str) -> List[DictionaryEntry]:
        ...


class StaticDictionaryProvider:
    """
    Serves a fixed in-memory table regardless of scope
    """

    def __init__(self, entries: Optional[Iterable[DictionaryEntry]] = None):
        self.entries = tuple(DEFAULT_DICTIONARY if entries is None else entries)

    def load_dictionary_entries(self, scope_key: str) -> List[DictionaryEntry]:
        return list(self.entries)


@dataclass(frozen=True)
class ReferenceData:
    """Read-only snapshot of all tables used during one classification pass"""
    dictionary: DictionaryMatcher
    registry: RegistryResolver
    rules: RuleMatcher
    activity_codes: Tuple[ActivityCodeCategory, ...] = tuple(ACTIVITY_CODE_CATEGORIES)
    keyword_weights: Tuple[KeywordWeight, ...] = tuple(KEYWORD_WEIGHTS)

    @classmethod
    def default(cls,
                config: Optional[PipelineConfig] = None,
                registry: Optional[RegistryResolver] = None,
                rule_rows: Optional[List[Dict]] = None) -> 'ReferenceData':
        """
        Built-in dictionary, optionally with another registry or extra rules

        Raises:
            ReferenceDataError: the registry could not be refreshed
        """
        config = config or PipelineConfig()
        return cls(
            dictionary=DictionaryMatcher(partial_penalty=config.partial_match_penalty),
            registry=_snapshot_registry(registry, config),
            rules=_build_rules(rule_rows),
        )

    @classmethod
    def load(cls,
             dictionary_provider: DictionaryProvider,
             registry: Optional[RegistryResolver] = None,
             config: Optional[PipelineConfig] = None,
             scope_key: Optional[str] = None,
             rule_rows: Optional[List[Dict]] = None,
             require_dictionary: bool = True) -> 'ReferenceData':
        """
        Load a fresh snapshot

        Args:
            dictionary_provider: Where dictionary entries come from
            registry: Registry resolver (default: in-memory registry)
            config: Pipeline config (thresholds, scope)
            scope_key: Dictionary scope (default: config.dictionary_scope)
            rule_rows: Custom rule rows placed ahead of the built-in rules
            require_dictionary: Treat an empty dictionary as a load failure

        Raises:
            ReferenceDataError: the provider failed, returned nothing
                while a dictionary is required, or the registry could not
                be refreshed
        """
        config = config or PipelineConfig()
        scope = scope_key or config.dictionary_scope

        try:
            entries = dictionary_provider.load_dictionary_entries(scope)
        except Exception as e:
            raise ReferenceDataError(f"Could not load dictionary for scope {scope!r}: {e}") from e

        if entries is None or (require_dictionary and not entries):
            raise ReferenceDataError(f"Dictionary for scope {scope!r} is empty")

        snapshot = cls(
            dictionary=DictionaryMatcher(entries, partial_penalty=config.partial_match_penalty),
            registry=_snapshot_registry(registry, config),
            rules=_build_rules(rule_rows),
        )
        logger.info("Loaded reference data: %d dictionary entries for scope %r", len(entries), scope)
        return snapshot


def _snapshot_registry(registry: Optional[RegistryResolver], config: PipelineConfig) -> RegistryResolver:
    """Refresh a store-backed registry; in-memory ones have nothing to reload"""
    if registry is None:
        return InMemoryRegistryResolver(threshold=config.registry_threshold)

    refresh = getattr(registry, 'refresh', None)
    if callable(refresh):
        try:
            refresh()
        except Exception as e:
            raise ReferenceDataError(f"Could not load registry: {e}") from e
    return registry


def _build_rules(rule_rows: Optional[List[Dict]]) -> RuleMatcher:
    rules = RuleMatcher()
    if rule_rows:
        rules.load_rules(rule_rows)
    return rules
