"""Tests for the combination aggregator.

Uses an in-memory gateway double; no network.
"""

import asyncio
import random
from unittest.mock import AsyncMock

import pytest

from namesake.core.aggregator import (
    LookupOutcome,
    analyze,
    analyze_sync,
    distinct_parts,
    expand_combinations,
    merge_combination,
)
from namesake.core.errors import (
    AllProvidersUnavailable,
    InvalidInput,
    ProviderError,
    TooManyCombinations,
)
from namesake.core.models import (
    AnalysisOptions,
    CulturalAssociations,
    Gender,
    NameCombination,
    Nicknames,
    PartMetadata,
    PartStatus,
)


class FakeGateway:
    """Deterministic gateway double.

    Known names return their metadata, names in `failing` raise
    ProviderError, anything else is not found.
    """

    def __init__(self, known=None, failing=(), delay=0.0, jitter=False):
        self.known = {k.casefold(): v for k, v in (known or {}).items()}
        self.failing = {f.casefold() for f in failing}
        self.delay = delay
        self.jitter = jitter
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def lookup(self, part: str) -> PartMetadata | None:
        self.calls.append(part)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delay * random.random() if self.jitter else self.delay
            await asyncio.sleep(delay)
            if part.casefold() in self.failing:
                raise ProviderError("fake", "boom")
            return self.known.get(part.casefold())
        finally:
            self.in_flight -= 1


def _meta(gender=Gender.UNKNOWN, meaning="", **kwargs) -> PartMetadata:
    return PartMetadata(gender=gender, meaning=meaning, sources=["fake"], **kwargs)


ANA = _meta(
    Gender.FEMALE,
    "grace",
    cultural_associations=CulturalAssociations(positive=["Spanish"]),
    nicknames=Nicknames(good=["Annie"]),
    variations=["Anna"],
)
BOB = _meta(Gender.MALE, "bright fame", nicknames=Nicknames(good=["Bobby"]))
ROSE = _meta(
    Gender.FEMALE,
    "rose flower",
    cultural_associations=CulturalAssociations(positive=["English"], negative=["X"]),
    nicknames=Nicknames(good=["Rosie"], bad=["Thorny"]),
    variations=["Rosa"],
)


def run(coro):
    return asyncio.run(coro)


# =============================================================================
# Pure helpers
# =============================================================================


class TestExpandCombinations:
    def test_no_middle(self):
        combos = expand_combinations(["Sam", "Alex"], [], "Kim")
        assert [c.full_name for c in combos] == ["Sam Kim", "Alex Kim"]
        assert all(c.middle is None for c in combos)

    def test_cartesian_product_in_input_order(self):
        combos = expand_combinations(["Ana", "Bob"], ["Rose", "Lee"], "Park")
        assert [c.key for c in combos] == [
            ("Ana", "Rose", "Park"),
            ("Ana", "Lee", "Park"),
            ("Bob", "Rose", "Park"),
            ("Bob", "Lee", "Park"),
        ]


class TestDistinctParts:
    def test_dedups_by_folded_key_keeping_first_spelling(self):
        assert distinct_parts(["Ana", "ANA", "Bob", "ana", "Rose"]) == ["Ana", "Bob", "Rose"]


class TestMergeCombination:
    def test_first_name_drives_gender_and_meaning(self):
        combo = NameCombination(first="Ana", middle="Rose", last="Lee")
        result = merge_combination(
            combo,
            LookupOutcome(PartStatus.OK, ANA),
            LookupOutcome(PartStatus.OK, ROSE),
        )
        assert result.gender == Gender.FEMALE
        assert result.meaning == "grace"
        assert result.parts["middle"].meaning == "rose flower"
        assert result.cultural_associations.positive == ["English", "Spanish"]
        assert result.cultural_associations.negative == ["X"]
        assert result.nicknames.good == ["Annie", "Rosie"]
        assert result.nicknames.bad == ["Thorny"]
        assert result.variations == ["Anna", "Rosa"]
        assert result.status == PartStatus.OK

    def test_middle_gender_is_informational(self):
        combo = NameCombination(first="Bob", middle="Rose", last="Lee")
        result = merge_combination(
            combo,
            LookupOutcome(PartStatus.OK, BOB),
            LookupOutcome(PartStatus.OK, ROSE),
        )
        assert result.gender == Gender.MALE

    def test_without_middle(self):
        combo = NameCombination(first="Ana", last="Lee")
        result = merge_combination(combo, LookupOutcome(PartStatus.OK, ANA))
        assert set(result.part_status) == {"first"}
        assert "middle" not in result.parts


# =============================================================================
# analyze()
# =============================================================================


class TestAnalyzeBasics:
    def test_no_middle_names(self):
        gateway = FakeGateway()
        result = run(analyze(["Sam"], [], "Kim", gateway=gateway))
        assert [c.full_name for c in result.combinations] == ["Sam Kim"]
        assert result.combinations[0].combination.middle is None
        assert set(result.combinations[0].part_status) == {"first"}

    def test_count_invariant(self):
        gateway = FakeGateway(known={"Ana": ANA, "Bob": BOB, "Rose": ROSE})
        result = run(analyze(["Ana", "Bob", "Cy"], ["Rose", "Lee"], "Park", gateway=gateway))
        assert len(result.combinations) == 3 * 2

    def test_output_order_independent_of_completion_order(self):
        gateway = FakeGateway(known={"Ana": ANA, "Bob": BOB}, delay=0.01, jitter=True)
        firsts = ["Bob", "Ana", "Cy", "Di", "Ed"]
        middles = ["Rose", "Lee"]
        result = run(analyze(firsts, middles, "Park", gateway=gateway))
        assert [(c.combination.first, c.combination.middle) for c in result.combinations] == [
            (f, m) for f in firsts for m in middles
        ]

    def test_idempotent_with_deterministic_gateway(self):
        def once():
            gateway = FakeGateway(known={"Ana": ANA, "Rose": ROSE}, failing=["Bob"])
            return run(analyze(["Ana", "Bob"], ["Rose"], "Lee", gateway=gateway)).to_wire()

        assert once() == once()

    def test_metadata_merged_into_combinations(self):
        gateway = FakeGateway(known={"Ana": ANA, "Rose": ROSE})
        result = run(analyze(["Ana"], ["Rose"], "Lee", gateway=gateway))
        combo = result.combinations[0]
        assert combo.full_name == "Ana Rose Lee"
        assert combo.gender == Gender.FEMALE
        assert combo.nicknames.good == ["Annie", "Rosie"]
        assert combo.status == PartStatus.OK

    def test_default_options(self):
        gateway = FakeGateway()
        result = run(analyze(["Sam"], [], "Kim", None, gateway=gateway))
        assert len(result.combinations) == 1


class TestAnalyzeValidation:
    def test_empty_first_names(self):
        with pytest.raises(InvalidInput):
            run(analyze([], ["Rose"], "Lee", gateway=FakeGateway()))

    @pytest.mark.parametrize("last", ["", "   ", "L33", "-Lee"])
    def test_invalid_last_name(self, last):
        with pytest.raises(InvalidInput):
            run(analyze(["Ana"], [], last, gateway=FakeGateway()))

    def test_all_first_names_rejected(self):
        gateway = FakeGateway()
        with pytest.raises(InvalidInput):
            run(analyze(["", "R2D2"], ["Rose"], "Lee", gateway=gateway))
        assert gateway.calls == []

    def test_rejected_parts_reported_not_dropped(self):
        gateway = FakeGateway(known={"Ana": ANA})
        result = run(analyze(["Ana", "B0b"], ["", "Rose"], "Lee", gateway=gateway))
        assert [c.full_name for c in result.combinations] == ["Ana Rose Lee"]
        assert [(r.part, r.role, r.reason) for r in result.rejected] == [
            ("B0b", "first", "invalid_characters"),
            ("", "middle", "empty"),
        ]

    def test_all_middles_rejected_falls_back_to_first_last(self):
        result = run(analyze(["Ana", "Bob"], ["!!", "9"], "Lee", gateway=FakeGateway()))
        assert [c.full_name for c in result.combinations] == ["Ana Lee", "Bob Lee"]
        assert len(result.rejected) == 2

    def test_inputs_are_normalized(self):
        gateway = FakeGateway()
        result = run(analyze(["  Mary   Ann "], [], " Lee ", gateway=gateway))
        assert result.combinations[0].full_name == "Mary Ann Lee"
        assert gateway.calls == ["Mary Ann"]


class TestAnalyzeCap:
    def test_cap_exceeded_makes_no_provider_calls(self):
        gateway = FakeGateway()
        firsts = [f"First{chr(65 + i)}" for i in range(15)]
        middles = [f"Middle{chr(65 + i)}" for i in range(10)]
        with pytest.raises(TooManyCombinations) as exc_info:
            run(
                analyze(
                    firsts,
                    middles,
                    "Lee",
                    AnalysisOptions(max_combinations=100),
                    gateway=gateway,
                )
            )
        assert exc_info.value.count == 150
        assert exc_info.value.limit == 100
        assert gateway.calls == []

    def test_cap_is_inclusive(self):
        firsts = [f"First{chr(65 + i)}" for i in range(10)]
        middles = [f"Middle{chr(65 + i)}" for i in range(10)]
        result = run(
            analyze(
                firsts, middles, "Lee", AnalysisOptions(max_combinations=100), gateway=FakeGateway()
            )
        )
        assert len(result.combinations) == 100


class TestAnalyzeLookups:
    def test_each_distinct_part_looked_up_once(self):
        gateway = FakeGateway()
        firsts = [f"First{chr(65 + i)}" for i in range(10)]
        middles = [f"Middle{chr(65 + i)}" for i in range(10)]
        result = run(analyze(firsts, middles, "Lee", gateway=gateway))
        assert len(result.combinations) == 100
        assert len(gateway.calls) == 20
        assert result.lookup_count == 20

    def test_case_insensitive_duplicates_share_lookup(self):
        gateway = FakeGateway(known={"Ana": ANA})
        result = run(analyze(["Ana", "ANA"], ["ana"], "Lee", gateway=gateway))
        assert gateway.calls == ["Ana"]
        assert len(result.combinations) == 2
        # Display keeps each input's own spelling
        assert [c.full_name for c in result.combinations] == ["Ana ana Lee", "ANA ana Lee"]
        assert all(c.gender == Gender.FEMALE for c in result.combinations)

    def test_last_name_is_not_looked_up(self):
        gateway = FakeGateway()
        run(analyze(["Ana"], [], "Lee", gateway=gateway))
        assert gateway.calls == ["Ana"]

    def test_concurrency_bound(self):
        gateway = FakeGateway(delay=0.01)
        firsts = [f"Name{chr(65 + i)}" for i in range(12)]
        run(
            analyze(
                firsts, [], "Lee", AnalysisOptions(max_concurrent_lookups=3), gateway=gateway
            )
        )
        assert gateway.max_in_flight <= 3
        assert len(gateway.calls) == 12

    def test_not_found_is_resolved(self):
        gateway = FakeGateway(known={"Ana": ANA})
        result = run(analyze(["Ana", "Zyx"], [], "Lee", gateway=gateway))
        zyx = result.combinations[1]
        assert zyx.status == PartStatus.NOT_FOUND
        assert zyx.gender == Gender.UNKNOWN
        assert not zyx.degraded
        assert result.not_found_parts == ["Zyx"]

    def test_all_not_found_does_not_raise(self):
        result = run(analyze(["Zyx", "Qux"], [], "Lee", gateway=FakeGateway()))
        assert all(c.status == PartStatus.NOT_FOUND for c in result.combinations)


class TestAnalyzeFailures:
    def test_partial_failure_degrades_only_that_part(self):
        gateway = FakeGateway(known={"Ana": ANA}, failing=["Bob"])
        result = run(analyze(["Ana", "Bob"], [], "Lee", gateway=gateway))

        assert len(result.combinations) == 2
        ana, bob = result.combinations
        assert ana.part_status == {"first": PartStatus.OK}
        assert ana.gender == Gender.FEMALE
        assert bob.part_status == {"first": PartStatus.PROVIDER_FAILED}
        assert bob.gender == Gender.UNKNOWN
        assert bob.meaning == ""
        assert bob.nicknames.good == []
        assert bob.variations == []
        assert bob.degraded
        assert result.failed_parts == ["Bob"]

    def test_failed_middle_degrades_every_combination_using_it(self):
        gateway = FakeGateway(known={"Ana": ANA, "Bob": BOB}, failing=["Rose"])
        result = run(analyze(["Ana", "Bob"], ["Rose"], "Lee", gateway=gateway))
        for combo in result.combinations:
            assert combo.part_status["first"] == PartStatus.OK
            assert combo.part_status["middle"] == PartStatus.PROVIDER_FAILED
            assert combo.status == PartStatus.PROVIDER_FAILED

    def test_total_outage_raises(self):
        gateway = FakeGateway(failing=["Ana", "Bob", "Rose"])
        with pytest.raises(AllProvidersUnavailable) as exc_info:
            run(analyze(["Ana", "Bob"], ["Rose"], "Lee", gateway=gateway))
        assert exc_info.value.parts == ["Ana", "Bob", "Rose"]

    def test_timeout_counts_as_provider_failure(self):
        class SlowForBob(FakeGateway):
            async def lookup(self, part):
                if part == "Bob":
                    await asyncio.sleep(5)
                return await super().lookup(part)

        gateway = SlowForBob(known={"Ana": ANA})
        result = run(
            analyze(
                ["Ana", "Bob"], [], "Lee", AnalysisOptions(provider_timeout_ms=50), gateway=gateway
            )
        )
        assert result.combinations[0].status == PartStatus.OK
        assert result.combinations[1].status == PartStatus.PROVIDER_FAILED

    def test_unexpected_exception_propagates(self):
        gateway = AsyncMock()
        gateway.lookup.side_effect = RuntimeError("bug")
        with pytest.raises(RuntimeError):
            run(analyze(["Ana"], [], "Lee", gateway=gateway))


class TestAnalyzeCancellation:
    def test_cancel_stops_pending_lookups(self):
        gateway = FakeGateway(delay=10.0)
        firsts = [f"Name{chr(65 + i)}" for i in range(10)]

        async def scenario():
            task = asyncio.create_task(
                analyze(
                    firsts, [], "Lee", AnalysisOptions(max_concurrent_lookups=2), gateway=gateway
                )
            )
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        run(scenario())
        # Only the lookups holding a semaphore slot ever reached the gateway
        assert len(gateway.calls) == 2
        assert gateway.in_flight == 0


class TestAnalyzeSync:
    def test_closes_gateway(self):
        gateway = FakeGateway(known={"Ana": ANA})
        gateway.close_async = AsyncMock()
        result = analyze_sync(["Ana"], [], "Lee", gateway=gateway)
        assert result.combinations[0].gender == Gender.FEMALE
        gateway.close_async.assert_awaited_once()

    def test_closes_gateway_on_error(self):
        gateway = FakeGateway()
        gateway.close_async = AsyncMock()
        with pytest.raises(InvalidInput):
            analyze_sync([], [], "Lee", gateway=gateway)
        gateway.close_async.assert_awaited_once()
