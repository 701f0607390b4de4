"""Combination Aggregator.

Turns (first names, middle names, last name) into full-name combinations,
each annotated with metadata from the provider gateway:

1. Validate and normalize parts; invalid first/middle parts are reported
   in `rejected`, never silently dropped.
2. Expand first × middle (or first only) against the fixed last name.
3. Refuse expansions above `max_combinations` before any provider call.
4. Look up each distinct folded part once, with bounded concurrency and a
   per-lookup timeout.
5. Assemble results in input order, degrading parts whose lookup failed.

The lookup cache is local to one analyze() call and only ever holds
completed outcomes, so cancelling a request leaves nothing half-written.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Protocol, Sequence

from .errors import AllProvidersUnavailable, InvalidInput, ProviderError, TooManyCombinations
from .models import (
    AnalysisOptions,
    AnalysisResult,
    CombinationResult,
    NameCombination,
    PartMetadata,
    PartStatus,
    RejectedPart,
)
from .validation import check_part, fold_part, normalize_part, validate_parts

logger = logging.getLogger(__name__)


class LookupGateway(Protocol):
    async def lookup(self, part: str) -> PartMetadata | None: ...


@dataclass(frozen=True)
class LookupOutcome:
    """Result of looking up one distinct part within a request."""

    status: PartStatus
    metadata: PartMetadata


_EMPTY = PartMetadata()


# =============================================================================
# Pure helpers
# =============================================================================


def prepare_parts(
    first_names: Sequence[str],
    middle_names: Sequence[str],
    last_name: str,
) -> tuple[list[str], list[str], str, list[RejectedPart]]:
    """Validate raw input.

    Returns:
        (valid first names, valid middle names, normalized last name, rejected)

    Raises:
        InvalidInput: empty first-name list, no valid first name, or an
            empty/invalid last name
    """
    if not first_names:
        raise InvalidInput("At least one first name is required")

    last = normalize_part(last_name)
    reason = check_part(last)
    if reason is not None:
        raise InvalidInput(f"Last name {last_name!r} is invalid: {reason}")

    firsts, rejected = validate_parts(first_names, "first")
    middles, rejected_middle = validate_parts(middle_names or [], "middle")
    rejected.extend(rejected_middle)

    if not firsts:
        raise InvalidInput(
            f"None of the {len(first_names)} first name(s) passed validation"
        )
    if middle_names and not middles:
        logger.info("[ANALYZE] All middle names rejected; expanding first + last only")

    return firsts, middles, last, rejected


def count_combinations(first: Sequence[str], middle: Sequence[str]) -> int:
    return len(first) * max(1, len(middle))


def expand_combinations(
    first: Sequence[str],
    middle: Sequence[str],
    last: str,
) -> list[NameCombination]:
    """First × middle (or first alone) against the fixed last name, in input order."""
    if not middle:
        return [NameCombination(first=f, last=last) for f in first]
    return [NameCombination(first=f, middle=m, last=last) for f in first for m in middle]


def distinct_parts(parts: Sequence[str]) -> list[str]:
    """Distinct parts by folded key, keeping the first spelling seen and input order."""
    seen: dict[str, str] = {}
    for part in parts:
        seen.setdefault(fold_part(part), part)
    return list(seen.values())


def merge_combination(
    combination: NameCombination,
    first: LookupOutcome,
    middle: LookupOutcome | None = None,
) -> CombinationResult:
    """Merge per-part outcomes into one CombinationResult.

    Set fields are unioned; gender and meaning come from the first name,
    the middle name's values stay available under `parts["middle"]`.
    """
    part_status = {"first": first.status}
    parts = {"first": first.metadata}
    cultures = first.metadata.cultural_associations
    nicknames = first.metadata.nicknames
    variations = list(first.metadata.variations)

    if middle is not None:
        part_status["middle"] = middle.status
        parts["middle"] = middle.metadata
        cultures = cultures.union(middle.metadata.cultural_associations)
        nicknames = nicknames.union(middle.metadata.nicknames)
        variations.extend(middle.metadata.variations)

    return CombinationResult(
        combination=combination,
        part_status=part_status,
        parts=parts,
        meaning=first.metadata.meaning,
        gender=first.metadata.gender,
        cultural_associations=cultures,
        nicknames=nicknames,
        variations=variations,
    )


# =============================================================================
# Lookup fan-out
# =============================================================================


async def _resolve_parts(
    parts: Sequence[str],
    gateway: LookupGateway,
    options: AnalysisOptions,
) -> tuple[dict[str, LookupOutcome], int]:
    """Look up each part once with bounded concurrency.

    Returns:
        (outcomes keyed by folded part, number of lookups issued)
    """
    semaphore = asyncio.Semaphore(options.max_concurrent_lookups)
    timeout = options.provider_timeout_seconds
    issued = [0]

    async def _lookup(part: str) -> tuple[str, LookupOutcome]:
        async with semaphore:
            issued[0] += 1
            start = time.time()
            try:
                metadata = await asyncio.wait_for(gateway.lookup(part), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(f"[LOOKUP] {part!r} timed out after {timeout:.1f}s")
                return part, LookupOutcome(PartStatus.PROVIDER_FAILED, _EMPTY)
            except ProviderError as e:
                logger.warning(f"[LOOKUP] {part!r} failed: {e}")
                return part, LookupOutcome(PartStatus.PROVIDER_FAILED, _EMPTY)
            elapsed = time.time() - start

        if metadata is None:
            logger.info(f"[LOOKUP] {part!r} not found ({elapsed:.2f}s)")
            return part, LookupOutcome(PartStatus.NOT_FOUND, _EMPTY)
        logger.info(f"[LOOKUP] {part!r} ok ({elapsed:.2f}s, sources={metadata.sources})")
        return part, LookupOutcome(PartStatus.OK, metadata)

    # gather() cancels every pending lookup if this coroutine is cancelled;
    # lookups still waiting on the semaphore never reach the gateway.
    results = await asyncio.gather(*(_lookup(p) for p in parts))
    return {fold_part(part): outcome for part, outcome in results}, issued[0]


# =============================================================================
# Public API
# =============================================================================


async def analyze(
    first_names: Sequence[str],
    middle_names: Sequence[str],
    last_name: str,
    options: AnalysisOptions | None = None,
    *,
    gateway: LookupGateway,
) -> AnalysisResult:
    """Expand name parts into combinations and annotate them with metadata.

    Args:
        first_names: Candidate first names (non-empty)
        middle_names: Candidate middle names (may be empty)
        last_name: Fixed family name
        options: Cap, concurrency and timeout settings (defaults if None)
        gateway: Anything with `async lookup(part) -> PartMetadata | None`

    Returns:
        AnalysisResult with one CombinationResult per combination, in input
        order, and the parts rejected by validation

    Raises:
        InvalidInput: No usable first name, or an empty/invalid last name
        TooManyCombinations: Expansion exceeds options.max_combinations
        AllProvidersUnavailable: Every distinct part failed lookup
    """
    options = options or AnalysisOptions()

    firsts, middles, last, rejected = prepare_parts(first_names, middle_names, last_name)
    for r in rejected:
        logger.info(f"[ANALYZE] Rejected {r.role} name {r.part!r}: {r.reason}")

    count = count_combinations(firsts, middles)
    if count > options.max_combinations:
        raise TooManyCombinations(count, options.max_combinations)

    combinations = expand_combinations(firsts, middles, last)
    parts = distinct_parts([*firsts, *middles])
    logger.info(
        f"[ANALYZE] {len(combinations)} combinations from {len(parts)} distinct parts "
        f"(concurrency={options.max_concurrent_lookups})"
    )

    outcomes, issued = await _resolve_parts(parts, gateway, options)

    failed = [p for p in parts if outcomes[fold_part(p)].status == PartStatus.PROVIDER_FAILED]
    if len(failed) == len(parts):
        raise AllProvidersUnavailable(parts)
    not_found = [p for p in parts if outcomes[fold_part(p)].status == PartStatus.NOT_FOUND]

    results = [
        merge_combination(
            combo,
            outcomes[fold_part(combo.first)],
            outcomes[fold_part(combo.middle)] if combo.middle is not None else None,
        )
        for combo in combinations
    ]

    if failed:
        logger.warning(
            f"[ANALYZE] Degraded results for {len(failed)}/{len(parts)} parts: "
            f"{', '.join(failed)}"
        )

    return AnalysisResult(
        combinations=results,
        rejected=rejected,
        lookup_count=issued,
        failed_parts=failed,
        not_found_parts=not_found,
    )


def analyze_sync(
    first_names: Sequence[str],
    middle_names: Sequence[str],
    last_name: str,
    options: AnalysisOptions | None = None,
    *,
    gateway=None,
    config=None,
) -> AnalysisResult:
    """Blocking wrapper around analyze().

    Builds a gateway from config when none is given, and closes it before
    the event loop shuts down.
    """
    if gateway is None:
        from .providers import build_gateway

        gateway = build_gateway(config)

    async def run():
        try:
            return await analyze(
                first_names, middle_names, last_name, options, gateway=gateway
            )
        finally:
            close = getattr(gateway, "close_async", None)
            if close is not None:
                await close()

    return asyncio.run(run())
