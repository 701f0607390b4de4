"""Namesake: expand candidate baby names into full-name combinations annotated with name metadata."""

__version__ = "0.1.0"

from .core.aggregator import analyze, analyze_sync
from .core.errors import (
    AllProvidersUnavailable,
    InvalidInput,
    NamesakeError,
    ProviderError,
    TooManyCombinations,
)
from .core.models import (
    AnalysisOptions,
    AnalysisResult,
    CombinationResult,
    Gender,
    NameCombination,
    PartMetadata,
    PartStatus,
    RejectedPart,
)

__all__ = [
    "__version__",
    "analyze",
    "analyze_sync",
    "AnalysisOptions",
    "AnalysisResult",
    "CombinationResult",
    "Gender",
    "NameCombination",
    "PartMetadata",
    "PartStatus",
    "RejectedPart",
    "NamesakeError",
    "InvalidInput",
    "TooManyCombinations",
    "ProviderError",
    "AllProvidersUnavailable",
]
