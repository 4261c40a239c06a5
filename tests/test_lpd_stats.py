"""
Tests for lpd_algorithms.lpd.lpd_stats module.
"""

import numpy as np
import pytest

from lpd_algorithms.lpd import config
from lpd_algorithms.lpd.lpd import calc_lpd
from lpd_algorithms.lpd.lpd_stats import (
    accumulate_summary_tables,
    class_totals,
    label_summary,
    summarise_lpd,
)
from lpd_algorithms.lpd.models import LPDParams, Period, SummaryTableLPD, TimeSeries
from lpd_algorithms.util_numba import calc_row_areas

PERIOD = Period(2000, 2015)
K = np.arange(16)


@pytest.fixture
def results():
    series = [
        3000 + 100 * K,
        3000 + 100 * K,
        6000 - 100 * K,
        np.full(16, 1500),
    ]
    values = np.stack(series, axis=1).reshape(16, 2, 2)
    return calc_lpd(LPDParams(), PERIOD, TimeSeries(PERIOD.years, values))


class TestClassTotals:
    def test_counts(self):
        a = np.array([[1, 1, 2], [5, 1, 0]], dtype=np.int16)
        assert class_totals(a) == {0: 1.0, 1: 3.0, 2: 1.0, 5: 1.0}

    def test_weights(self):
        a = np.array([[1, 1], [2, 1]], dtype=np.int16)
        weights = np.array([[10.0], [2.5]])
        assert class_totals(a, weights) == {1: 22.5, 2: 2.5}

    def test_classes(self):
        a = np.array([3, 3], dtype=np.int16)
        assert class_totals(a, classes=[1, 3]) == {1: 0.0, 3: 2.0}


class TestSummariseLPD:
    def test_counts(self, results):
        table = summarise_lpd(results)
        assert isinstance(table, SummaryTableLPD)
        assert table.lpd_summary == {0: 0.0, 1: 1.0, 2: 0.0, 3: 0.0, 4: 1.0, 5: 2.0}
        assert sum(table.steadiness_summary.values()) == 4
        assert table.steadiness_summary[4] == 2.0
        assert table.state_summary == {1: 1.0, 2: 1.0, 3: 2.0}
        assert table.initial_biomass_summary == {1: 3.0, 2: 1.0}

    def test_areas(self, results):
        # Two rows of half degree cells just north of the equator
        areas = calc_row_areas(1.0, -0.5, 0.5, 2).reshape(-1, 1)
        table = summarise_lpd(results, areas)
        assert sum(table.lpd_summary.values()) == pytest.approx(2 * areas.sum())
        assert table.lpd_summary[5] == pytest.approx(2 * areas[0, 0])
        assert table.lpd_summary[1] == pytest.approx(areas[1, 0])

    def test_accumulate(self, results):
        table = summarise_lpd(results)
        total = accumulate_summary_tables([table, table])
        assert total.lpd_summary[5] == 4.0
        assert total.state_summary == {1: 2.0, 2: 2.0, 3: 4.0}
        assert accumulate_summary_tables([table]) is table

    def test_schema_dump(self, results):
        data = SummaryTableLPD.Schema().dump(summarise_lpd(results))
        assert data["lpd_summary"][5] == 2.0

    def test_label_summary(self, results):
        table = summarise_lpd(results)
        labelled = label_summary(table.lpd_summary)
        assert labelled["Increasing"] == 2.0
        assert labelled["Stable"] == 1.0
        assert labelled["No data"] == 0.0

        labelled = label_summary(table.state_summary, config.STATE_CLASS_KEY)
        assert labelled == {
            "Decline": 1.0,
            "Stable": 1.0,
            "Improvement": 2.0,
            "No data": 0.0,
        }
