"""Tests for overlap counting and mutual capacitance estimation."""

import numpy as np
import pytest

from capacitance import (
    adjacent_layers, estimate_mutual_capacitances, overlap_capacitance, overlap_counts,
    significant_capacitances
)
from net_registry import NetRegistry
from report_writer import format_mutcaps

EPS0 = 8.854e-12


def _registry(*names):
    registry = NetRegistry()
    for name in names:
        registry.register(name)
    return registry


def test_single_pixel_overlap_at_600_dpi():
    delta = 25.4 / 600
    ids = np.ones((2, 1, 1), dtype=np.int32)
    registry = _registry('A', 'B')
    caps = estimate_mutual_capacitances(ids, [[1], [2]], registry, delta, 4.2, 1.6)
    expected = EPS0 * 4.2 * (delta * delta * 1e-6) / 1.6e-3
    assert caps == {(1, 2): pytest.approx(expected)}

    [row] = significant_capacitances(caps, registry, 0.0)
    assert (row.name_a, row.name_b) == ('A', 'B')
    assert row.attofarads == 42
    assert format_mutcaps([row]) == ['  0.000 pF\tA\tB']


def test_capacitance_is_linear_in_area_and_inverse_in_thickness():
    base = overlap_capacitance(1, 0.1, 4.0, 1.0)
    assert overlap_capacitance(10, 0.1, 4.0, 1.0) == pytest.approx(10 * base)
    assert overlap_capacitance(1, 0.1, 4.0, 2.0) == pytest.approx(base / 2)
    assert overlap_capacitance(1, 0.1, 8.0, 1.0) == pytest.approx(2 * base)
    assert overlap_capacitance(0, 0.1, 4.0, 1.0) == 0.0


def test_overlap_counts():
    top = np.array([[1, 1, 0], [2, 2, 0]])
    bottom = np.array([[3, 1, 1], [3, 0, 1]])
    assert overlap_counts(top, bottom) == [(1, 1, 1), (1, 3, 1), (2, 3, 1)]
    assert overlap_counts(top, np.zeros_like(bottom)) == []


@pytest.mark.parametrize('ilay, num_layers, expected', [
    (0, 1, []),
    (0, 2, [1]),
    (1, 2, []),
    (0, 4, [1]),
    (1, 4, [2]),
    (2, 4, [1, 3]),
    (3, 4, [2]),
])
def test_adjacent_layers(ilay, num_layers, expected):
    assert adjacent_layers(ilay, num_layers) == expected


def test_inner_layer_pairs_are_counted_from_both_sides():
    # The same one-pixel overlap between layers 0-1 and between layers 1-2
    ids = np.ones((3, 1, 1), dtype=np.int32)
    registry = _registry('A', 'B', 'C')
    caps = estimate_mutual_capacitances(ids, [[1], [2], [3]], registry, 1.0, 1.0, 1.0)
    one = overlap_capacitance(1, 1.0, 1.0, 1.0)
    assert caps[(1, 2)] == pytest.approx(one)
    assert caps[(2, 3)] == pytest.approx(2 * one)
    assert (1, 3) not in caps


def test_unconnected_and_same_net_overlaps_are_skipped():
    ids = np.array([[[1, 2, 3]], [[1, 1, 1]]], dtype=np.int32)
    registry = _registry('A', 'B')
    # Layer 0: A, unconnected, B; layer 1: one component on net A
    caps = estimate_mutual_capacitances(ids, [[1, 0, 2], [1]], registry, 1.0, 1.0, 1.0)
    assert list(caps) == [(1, 2)]


def test_overlaps_summed_per_net_pair():
    ids = np.array([[[1, 0, 2]], [[1, 1, 1]]], dtype=np.int32)
    registry = _registry('A', 'B')
    # Two separate A components both face the B plane below
    caps = estimate_mutual_capacitances(ids, [[1, 1], [2]], registry, 1.0, 1.0, 1.0)
    assert caps == {(1, 2): pytest.approx(2 * overlap_capacitance(1, 1.0, 1.0, 1.0))}


def test_nets_that_never_overlap_report_nothing():
    ids = np.array([[[1, 0]], [[0, 1]]], dtype=np.int32)
    registry = _registry('A', 'B')
    caps = estimate_mutual_capacitances(ids, [[1], [2]], registry, 1.0, 1.0, 1.0)
    assert caps == {}
    assert significant_capacitances(caps, registry, 0.0) == []
    assert significant_capacitances(caps, registry, -1.0) == []


def test_threshold_and_ordering():
    registry = _registry('A', 'B', 'C', 'D')
    caps = {
        (1, 2): 3e-12,
        (3, 4): 1e-12,
        (2, 3): 1e-12 + 1e-20,  # same attofarad key as (3, 4)
        (1, 4): 5e-14,
    }
    rows = significant_capacitances(caps, registry, 1e-13)
    assert [(r.net_a, r.net_b) for r in rows] == [(2, 3), (3, 4), (1, 2)]
    assert format_mutcaps(rows) == [
        '  1.000 pF\tB\tC',
        '  1.000 pF\tC\tD',
        '  3.000 pF\tA\tB',
    ]


def test_threshold_is_inclusive():
    registry = _registry('A', 'B')
    rows = significant_capacitances({(1, 2): 2e-12}, registry, 2e-12)
    assert len(rows) == 1
    assert rows[0].picofarads == pytest.approx(2.0)
