"""
Property-based tests using Hypothesis for the portfolio analytics engines.

These tests verify round-trip guarantees of the codecs and the mathematical
invariants of the heatmap merge, z-scores and the session aggregator across
generated inputs.
"""

from datetime import date

import hypothesis.strategies as st
import pytest
from hypothesis import assume, given, settings

from portfolio_analytics.codec import bitpack
from portfolio_analytics.codec.blob import BlobReader, BlobSection, build_blob
from portfolio_analytics.codec.errors import ValueOverflowError
from portfolio_analytics.engine.aggregator import MetricsAggregator
from portfolio_analytics.engine.heatmap import HeatmapMerger
from portfolio_analytics.engine.zscore import inverted_zscore, zscore
from portfolio_analytics.models.heatmap import HeatmapSnapshot
from portfolio_analytics.models.metrics import DailyAggregateMetrics, Engagement, InteractionMetrics


# =============================================================================
# Strategies
# =============================================================================


@st.composite
def packed_values(draw, max_size: int = 200):
    """A bit width together with values that fit it."""
    bits = draw(st.integers(min_value=1, max_value=32))
    values = draw(
        st.lists(st.integers(min_value=0, max_value=(1 << bits) - 1), max_size=max_size)
    )
    return bits, values


@st.composite
def snapshots(draw, max_index: int = 500, max_size: int = 60):
    samples = draw(
        st.lists(
            st.tuples(
                st.integers(min_value=0, max_value=max_index),
                st.integers(min_value=0, max_value=5000),
            ),
            max_size=max_size,
        )
    )
    return HeatmapSnapshot(
        version="1.0",
        columns=64,
        indexes=[i for i, _ in samples],
        values=[v for _, v in samples],
    )


finite_floats = st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False)


# =============================================================================
# Codec Property Tests
# =============================================================================


@given(data=packed_values())
@settings(max_examples=100)
def test_prop_bitpack_round_trip(data):
    """
    Invariant 1: decode(encode(values, b), b, len(values)) == values.
    """
    bits, values = data
    encoded = bitpack.encode(values, bits)
    assert len(encoded) == (len(values) * bits + 7) // 8
    assert bitpack.decode(encoded, bits, len(values)) == values


@given(bits=st.integers(min_value=1, max_value=31), excess=st.integers(min_value=0, max_value=1000))
@settings(max_examples=100)
def test_prop_bitpack_rejects_values_beyond_width(bits: int, excess: int):
    """
    Invariant 2: Any value >= 2**bits fails with ValueOverflowError.
    """
    with pytest.raises(ValueOverflowError):
        bitpack.encode([(1 << bits) + excess], bits)


@given(
    sections=st.lists(packed_values(max_size=40), min_size=1, max_size=6),
    version=st.integers(min_value=1, max_value=255),
    with_checksum=st.booleans(),
)
@settings(max_examples=100)
def test_prop_blob_round_trip(sections, version: int, with_checksum: bool):
    """
    Invariant 3: Every section decodes to its values, in declared order.
    """
    blob_sections = [BlobSection(i, bits, values) for i, (bits, values) in enumerate(sections)]
    blob = build_blob(version, blob_sections, with_checksum=with_checksum)

    reader = BlobReader.parse(blob, verify_checksum=with_checksum)
    assert reader.version == version
    assert reader.section_ids() == list(range(len(sections)))
    for i, (_, values) in enumerate(sections):
        assert reader.decode_section(i) == values


# =============================================================================
# Heatmap Property Tests
# =============================================================================


@given(
    first=snapshots(),
    second=snapshots(),
    max_cells=st.integers(min_value=0, max_value=80),
)
@settings(max_examples=100)
def test_prop_heatmap_merge_capacity(first, second, max_cells: int):
    """
    Invariant 4: A merge keeps min(max_cells, distinct indexes) unique cells.
    """
    merger = HeatmapMerger(max_cells=max_cells)
    intermediate = merger.merge(None, first)
    result = merger.merge(intermediate, second)

    distinct = len(set(intermediate.indexes) | set(second.indexes))
    assert len(result.cells) == min(max_cells, distinct)
    assert len(set(result.indexes)) == len(result.cells)


@given(snapshot=snapshots())
@settings(max_examples=100)
def test_prop_heatmap_merge_within_capacity_preserves_totals(snapshot):
    """
    Invariant 5: Without trimming, values and counts sum to the samples.
    """
    result = HeatmapMerger(max_cells=1000).merge(None, snapshot)
    assert sum(result.values) == sum(snapshot.values)
    assert sum(result.counts) == len(snapshot.indexes)


@given(snapshot=snapshots())
@settings(max_examples=100)
def test_prop_heatmap_merge_keeps_top_scores(snapshot):
    """
    Invariant 6: No dropped cell outscores a kept cell.
    """
    assume(len(set(snapshot.indexes)) > 5)
    full = HeatmapMerger(max_cells=1000).merge(None, snapshot)
    scores = dict(zip(full.indexes, HeatmapMerger().score_cells(full.cells).tolist()))

    kept = set(HeatmapMerger(max_cells=5).merge(None, snapshot).indexes)
    dropped = set(scores) - kept
    assert len(kept) == 5
    assert min(scores[i] for i in kept) >= max(scores[i] for i in dropped)


# =============================================================================
# Z-Score Property Tests
# =============================================================================


@given(current=finite_floats, baseline=st.lists(finite_floats, min_size=2, max_size=40))
@settings(max_examples=100)
def test_prop_zscore_bounds(current: float, baseline: list[float]):
    """
    Invariant 7: z-scores are always within [-3, 3] once the baseline has 2 points.
    """
    score = zscore(current, baseline)
    assert score is not None
    assert -3.0 <= score <= 3.0


@given(
    current=st.floats(min_value=0.0, max_value=1e6, allow_nan=False),
    baseline=st.lists(st.floats(min_value=0.0, max_value=1e6, allow_nan=False), min_size=2, max_size=40),
    use_log=st.booleans(),
)
@settings(max_examples=100)
def test_prop_inverted_zscore_bounds(current: float, baseline: list[float], use_log: bool):
    """
    Invariant 8: Inverted z-scores share the same bounds.
    """
    score = inverted_zscore(current, baseline, use_log_transform=use_log)
    assert -3.0 <= score <= 3.0


@given(current=finite_floats, baseline=st.lists(finite_floats, max_size=1))
@settings(max_examples=50)
def test_prop_zscore_short_baseline_is_none(current: float, baseline: list[float]):
    """
    Invariant 9: Fewer than 2 baseline points means no score.
    """
    assert zscore(current, baseline) is None


# =============================================================================
# Aggregator Property Tests
# =============================================================================

counters = st.integers(min_value=0, max_value=10_000)


@given(
    sessions=st.lists(
        st.tuples(counters, counters, counters, st.booleans()), min_size=1, max_size=30
    )
)
@settings(max_examples=100)
def test_prop_aggregator_is_additive(sessions):
    """
    Invariant 10: A day's aggregate is exactly the sum of its sessions.
    """
    aggregator = MetricsAggregator()
    day = DailyAggregateMetrics.empty("pf-prop", date(2026, 3, 15))
    for score, scroll_time, ttfi, mobile in sessions:
        day = aggregator.merge_session(
            day,
            Engagement(views=1, quality_visits=int(aggregator.is_quality_visit(ttfi, score, scroll_time))),
            InteractionMetrics(
                score_total=score, scroll_time_total=scroll_time, ttfi_sum_ms=ttfi, ttfi_count=1
            ),
            None,
        )

    assert day.engagement.views == len(sessions)
    assert day.scroll.ttfi_count == len(sessions)
    assert day.scroll.score_total == sum(s[0] for s in sessions)
    assert day.scroll.scroll_time_total == sum(s[1] for s in sessions)
    assert day.scroll.ttfi_sum_ms == sum(s[2] for s in sessions)
    assert 0 <= day.engagement.quality_visits <= day.engagement.views


@given(
    order=st.permutations(list(range(6))),
    views=st.lists(counters, min_size=6, max_size=6),
)
@settings(max_examples=50)
def test_prop_aggregator_order_independent(order, views):
    """
    Invariant 11: Session order does not change the summed aggregate.
    """
    aggregator = MetricsAggregator()
    start = DailyAggregateMetrics.empty("pf-prop", date(2026, 3, 15))

    in_order = start
    for v in views:
        in_order = aggregator.merge_session(in_order, Engagement(views=v), None, None)

    shuffled = start
    for i in order:
        shuffled = aggregator.merge_session(shuffled, Engagement(views=views[i]), None, None)

    assert in_order == shuffled
