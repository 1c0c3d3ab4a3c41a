"""
Statement Categorizer

Categorizes Brazilian bank statement lines (PIX, card purchases,
transfers, boletos, fees) through a deterministic pipeline: merchant
dictionary, business registry, rules, keyword scoring.
"""

__version__ = "1.0.0"

from .config import PipelineConfig
from .core.categorization_orchestrator import CategorizationOrchestrator
from .core.models import CategorizedRecord, RawRecord

__all__ = [
    'PipelineConfig',
    'CategorizationOrchestrator',
    'CategorizedRecord',
    'RawRecord',
]
