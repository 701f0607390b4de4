"""Pydantic models for name analysis.

- NameCombination: one candidate full name (first, optional middle, last)
- PartMetadata: what providers know about a single name part
- CombinationResult: a combination plus merged metadata and per-part status
- AnalysisOptions / AnalysisResult: request knobs and response envelope

Set-valued fields are stored as de-duplicated, sorted lists so that
serialized output is deterministic across runs.
"""

from enum import Enum
from typing import Any, Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    ANDROGYNOUS = "androgynous"
    UNKNOWN = "unknown"


class PartStatus(str, Enum):
    OK = "ok"
    PROVIDER_FAILED = "provider-failed"
    NOT_FOUND = "not-found"


# Worst status wins when summarizing a combination
_STATUS_SEVERITY = {
    PartStatus.OK: 0,
    PartStatus.NOT_FOUND: 1,
    PartStatus.PROVIDER_FAILED: 2,
}


def tag_set(values: Iterable[str]) -> list[str]:
    """Strip, drop blanks, de-duplicate case-insensitively and sort.

    The first spelling seen for a given folded value is kept.
    """
    seen: dict[str, str] = {}
    for value in values:
        if value is None:
            continue
        cleaned = str(value).strip()
        if not cleaned:
            continue
        seen.setdefault(cleaned.casefold(), cleaned)
    return [seen[k] for k in sorted(seen)]


class CulturalAssociations(BaseModel):
    """Culture tags a name is well or poorly received in."""

    model_config = ConfigDict(frozen=True)

    positive: list[str] = Field(default_factory=list)
    negative: list[str] = Field(default_factory=list)

    @field_validator("positive", "negative")
    @classmethod
    def _normalize(cls, v: list[str]) -> list[str]:
        return tag_set(v)

    def union(self, other: "CulturalAssociations") -> "CulturalAssociations":
        return CulturalAssociations(
            positive=[*self.positive, *other.positive],
            negative=[*self.negative, *other.negative],
        )


class Nicknames(BaseModel):
    """Nicknames a name tends to attract, split by how welcome they are."""

    model_config = ConfigDict(frozen=True)

    good: list[str] = Field(default_factory=list)
    bad: list[str] = Field(default_factory=list)

    @field_validator("good", "bad")
    @classmethod
    def _normalize(cls, v: list[str]) -> list[str]:
        return tag_set(v)

    def union(self, other: "Nicknames") -> "Nicknames":
        return Nicknames(good=[*self.good, *other.good], bad=[*self.bad, *other.bad])


class PartMetadata(BaseModel):
    """Metadata for one name part, shared read-only by every combination using it."""

    model_config = ConfigDict(frozen=True)

    meaning: str = ""
    gender: Gender = Gender.UNKNOWN
    cultural_associations: CulturalAssociations = Field(
        default_factory=CulturalAssociations
    )
    nicknames: Nicknames = Field(default_factory=Nicknames)
    variations: list[str] = Field(default_factory=list)
    sources: list[str] = Field(
        default_factory=list, description="Providers that contributed, in priority order"
    )

    @field_validator("variations")
    @classmethod
    def _normalize_variations(cls, v: list[str]) -> list[str]:
        return tag_set(v)

    @field_validator("meaning")
    @classmethod
    def _strip_meaning(cls, v: str) -> str:
        return v.strip()

    @property
    def is_empty(self) -> bool:
        return (
            not self.meaning
            and self.gender == Gender.UNKNOWN
            and not self.cultural_associations.positive
            and not self.cultural_associations.negative
            and not self.nicknames.good
            and not self.nicknames.bad
            and not self.variations
        )


class NameCombination(BaseModel):
    """One candidate full name. Identity is the (first, middle, last) tuple."""

    model_config = ConfigDict(frozen=True)

    first: str
    middle: str | None = None
    last: str

    @property
    def key(self) -> tuple[str, str | None, str]:
        return (self.first, self.middle, self.last)

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first, self.middle, self.last) if p)


class CombinationResult(BaseModel):
    """A combination annotated with merged metadata.

    `parts` holds the per-part metadata that was merged ("first" and, when
    present, "middle"); the top-level fields are the merged view.
    """

    combination: NameCombination
    part_status: dict[str, PartStatus]
    parts: dict[str, PartMetadata] = Field(default_factory=dict)
    meaning: str = ""
    gender: Gender = Gender.UNKNOWN
    cultural_associations: CulturalAssociations = Field(
        default_factory=CulturalAssociations
    )
    nicknames: Nicknames = Field(default_factory=Nicknames)
    variations: list[str] = Field(default_factory=list)

    @field_validator("variations")
    @classmethod
    def _normalize_variations(cls, v: list[str]) -> list[str]:
        return tag_set(v)

    @property
    def full_name(self) -> str:
        return self.combination.full_name

    @property
    def status(self) -> PartStatus:
        if not self.part_status:
            return PartStatus.OK
        return max(self.part_status.values(), key=_STATUS_SEVERITY.__getitem__)

    @property
    def degraded(self) -> bool:
        return self.status == PartStatus.PROVIDER_FAILED

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON shape consumed by UI clients."""
        return {
            "full_name": self.full_name,
            "first": self.combination.first,
            "middle": self.combination.middle,
            "last": self.combination.last,
            "status": self.status.value,
            "part_status": {k: v.value for k, v in self.part_status.items()},
            "meaning": self.meaning,
            "gender": self.gender.value,
            "cultural_associations": self.cultural_associations.model_dump(mode="json"),
            "nicknames": self.nicknames.model_dump(mode="json"),
            "variations": list(self.variations),
            "parts": {k: v.model_dump(mode="json") for k, v in self.parts.items()},
        }


class RejectedPart(BaseModel):
    """A first/middle name excluded from expansion by input validation."""

    part: str
    role: Literal["first", "middle"]
    reason: str


class AnalysisOptions(BaseModel):
    """Per-request knobs. Defaults come from AnalysisConfig when built via from_config()."""

    max_combinations: int = Field(default=100, ge=1)
    max_concurrent_lookups: int = Field(default=5, ge=1)
    provider_timeout_ms: int = Field(default=10_000, ge=1)

    @property
    def provider_timeout_seconds(self) -> float:
        return self.provider_timeout_ms / 1000.0

    @classmethod
    def from_config(cls, config=None, **overrides: Any) -> "AnalysisOptions":
        """Build options from the global config, applying non-None overrides."""
        if config is None:
            from ..config import get_config

            config = get_config()
        values = {
            "max_combinations": config.analysis.max_combinations,
            "max_concurrent_lookups": config.analysis.max_concurrent_lookups,
            "provider_timeout_ms": config.analysis.provider_timeout_ms,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


class AnalysisResult(BaseModel):
    """Output of one analyze() call."""

    combinations: list[CombinationResult] = Field(default_factory=list)
    rejected: list[RejectedPart] = Field(default_factory=list)
    lookup_count: int = 0
    failed_parts: list[str] = Field(default_factory=list)
    not_found_parts: list[str] = Field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.failed_parts)

    def to_wire(self) -> dict[str, Any]:
        return {
            "combinations": [c.to_wire() for c in self.combinations],
            "rejected": [r.model_dump(mode="json") for r in self.rejected],
            "stats": {
                "combination_count": len(self.combinations),
                "lookup_count": self.lookup_count,
                "failed_parts": list(self.failed_parts),
                "not_found_parts": list(self.not_found_parts),
            },
        }
