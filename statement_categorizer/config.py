"""
Pipeline configuration

All thresholds the categorization pipeline uses, overridable from the
environment (or a .env file).
"""
import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

TAXONOMY_FILE = Path(__file__).parent / "data" / "taxonomy.json"

ENV_PREFIX = 'CATEGORIZER_'


@dataclass(frozen=True)
class PipelineConfig:
    """Tunable constants of the categorization pipeline"""
    dictionary_accept_threshold: float = 0.9   # dictionary hits at or below this don't lock a category
    dictionary_skip_threshold: float = 0.95    # at or above this the registry is not consulted
    registry_threshold: float = 0.75
    partial_match_penalty: float = 0.80
    keyword_confidence_cap: float = 0.89
    default_category: str = 'Outros'
    default_confidence: float = 0.4
    error_confidence: float = 0.1
    review_threshold: float = 0.80
    throttle_seconds: float = 0.0
    dictionary_scope: str = 'default'

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'PipelineConfig':
        """
        Build a config from CATEGORIZER_* environment variables

        e.g. CATEGORIZER_REGISTRY_THRESHOLD=0.8, CATEGORIZER_DEFAULT_CATEGORY=Outros.
        Unset variables keep their defaults.
        """
        load_dotenv(env_file)

        values = {}
        for f in fields(cls):
            raw = os.getenv(ENV_PREFIX + f.name.upper())
            if raw is None or raw == '':
                continue
            try:
                values[f.name] = float(raw) if f.type in (float, 'float') else raw
            except ValueError as e:
                raise ValueError(f"Invalid value for {ENV_PREFIX + f.name.upper()}: {raw!r}") from e
        return cls(**values)


def load_taxonomy(taxonomy_file: Optional[Path] = None) -> Dict:
    """Load the category taxonomy JSON"""
    with open(taxonomy_file or TAXONOMY_FILE, encoding='utf-8') as f:
        return json.load(f)


def category_names(taxonomy: Dict) -> List[str]:
    return [c['name'] for c in taxonomy['categories']]
