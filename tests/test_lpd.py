"""
Tests for lpd_algorithms.lpd.lpd module.

These tests run the full classification on synthetic pixels with known
trends, using the default (Priority Area Mode) parameters over a 16 year
period.
"""

import logging

import numpy as np
import pytest

from lpd_algorithms import ConfigurationError, KendallTableError, TimeSeriesError
from lpd_algorithms.lpd import config
from lpd_algorithms.lpd.lpd import calc_lpd, calc_lpd_pixel, check_config
from lpd_algorithms.lpd.models import (
    LPDParams,
    Period,
    SteadinessParams,
    TimeSeries,
)

PERIOD = Period(2000, 2015)
K = np.arange(16)


@pytest.fixture
def params():
    return LPDParams()


class TestCheckConfig:
    def test_returns_kendall_coef(self, params):
        assert check_config(params, PERIOD) == 50

    def test_period_too_short(self, params):
        with pytest.raises(KendallTableError):
            check_config(params, Period(2000, 2002))

    def test_period_too_long(self, params):
        with pytest.raises(KendallTableError):
            check_config(params, Period(1950, 2020))

    def test_invalid_period(self, params):
        with pytest.raises(ConfigurationError):
            check_config(params, Period(2015, 2000))

    def test_invalid_params(self):
        params = LPDParams(steadiness=SteadinessParams(significance_level=97))
        with pytest.raises(ConfigurationError):
            check_config(params, PERIOD)


class TestCalcLPDPixel:
    """Classify single pixels with known behaviour."""

    def test_constant(self, params):
        result = calc_lpd_pixel(params, PERIOD, np.full(16, 3000))
        assert result["mk_s"] == 0
        assert result["trend"] == 2
        assert result["mtid"] == 0
        assert result["mtid_magnitude"] == 2
        assert result["steadiness"] == 3
        assert result["state"] == 2
        assert result["initial_biomass"] == 1
        assert result["semi_final"] == 20
        assert result["lpd"] == 3
        assert result["lpd_with_water"] == 3
        assert not result["desert_mask"]
        assert not result["water_mask"]

    def test_increasing(self, params):
        result = calc_lpd_pixel(params, PERIOD, 3000 + 100 * K)
        assert result["mk_s"] == 120
        assert result["trend"] == 3
        assert result["mtid"] == pytest.approx(10500)
        assert result["mtid_magnitude"] == 3
        assert result["steadiness"] == 4
        assert result["t1_mean"] == pytest.approx(3150)
        assert result["t2_mean"] == pytest.approx(4350)
        assert result["t1_class"] == 2
        assert result["t2_class"] == 10
        assert result["state"] == 3
        assert result["initial_mean"] == pytest.approx(0.31)
        assert result["initial_biomass"] == 1
        assert result["semi_final"] == 30
        assert result["lpd"] == 5

    def test_decreasing(self, params):
        result = calc_lpd_pixel(params, PERIOD, 6000 - 100 * K)
        assert result["mk_s"] == -120
        assert result["trend"] == 1
        assert result["mtid"] == pytest.approx(-10500)
        assert result["steadiness"] == 1
        assert result["t1_class"] == 9
        assert result["t2_class"] == 1
        assert result["state"] == 1
        assert result["initial_biomass"] == 2
        assert result["semi_final"] == 4
        assert result["lpd"] == 1

    def test_small_change(self, params):
        """A significant but tiny increase is stable but stressed."""
        result = calc_lpd_pixel(params, PERIOD, 3000 + K)
        assert result["trend"] == 3
        assert result["mtid_magnitude"] == 2
        assert result["steadiness"] == 3
        assert result["t1_class"] == 2
        assert result["t2_class"] == 10
        assert result["state"] == 2
        assert result["lpd"] == 3

    def test_desert(self, params):
        result = calc_lpd_pixel(params, PERIOD, np.full(16, 1500))
        assert result["desert_mask"]
        assert result["lpd"] == config.DESERT_LPD_VALUE
        assert result["lpd_with_water"] == config.DESERT_LPD_VALUE

    def test_water_indicator(self, params):
        result = calc_lpd_pixel(params, PERIOD, np.full(16, 3000), water=True)
        assert result["water_mask"]
        assert result["lpd"] == 0
        assert result["lpd_with_water"] == 3

    def test_water_from_values(self, params):
        values = np.full(16, 3000)
        values[:6] = 0
        result = calc_lpd_pixel(params, PERIOD, values)
        assert result["water_mask"]
        assert result["lpd"] == 0
        assert result["lpd_with_water"] > 0

    def test_insufficient_data(self, params):
        """Pixels with fewer than 4 valid years are left unclassified."""
        valid = np.zeros(16, dtype=bool)
        valid[[0, 7, 15]] = True
        result = calc_lpd_pixel(params, PERIOD, np.full(16, 3000), valid)
        assert result["trend"] == config.NODATA_VALUE
        assert result["steadiness"] == config.NODATA_VALUE
        assert result["semi_final"] == config.NODATA_VALUE
        assert result["lpd"] == 0
        assert result["lpd_with_water"] == 0

    def test_missing_years(self, params):
        values = 3000 + 100 * K
        values[[5, 6]] = config.NODATA_VALUE
        result = calc_lpd_pixel(params, PERIOD, values)
        assert result["mk_s"] == 91
        assert result["mtid"] == pytest.approx(8800)
        assert result["steadiness"] == 4
        assert result["state"] == 3
        assert result["lpd"] == 5

    def test_longer_series(self, params):
        """Only the years in the period are used."""
        years = list(range(1995, 2021))
        values = np.full(len(years), 3000)
        values[years.index(2000) : years.index(2015) + 1] = 3000 + 100 * K
        result = calc_lpd_pixel(params, PERIOD, values, years=years)
        assert result["mk_s"] == 120
        assert result["lpd"] == 5

    def test_mtid_sign_method(self):
        params = LPDParams(steadiness=SteadinessParams(method="mtid_sign"))
        result = calc_lpd_pixel(params, PERIOD, np.full(16, 3000))
        assert result["mtid_sign"] == 1
        assert result["steadiness"] == 2
        assert result["semi_final"] == 11
        assert result["lpd"] == 2

        result = calc_lpd_pixel(params, PERIOD, 3000 + 100 * K)
        assert result["mtid_sign"] == 2
        assert result["steadiness"] == 4
        assert result["lpd"] == 5

    def test_lower_significance(self):
        """A weaker trend is significant at 95% but not at 99%."""
        values = np.full(16, 3000)
        values[12:] = 3100
        result_99 = calc_lpd_pixel(LPDParams(), PERIOD, values)
        result_95 = calc_lpd_pixel(
            LPDParams(steadiness=SteadinessParams(significance_level=95)),
            PERIOD,
            values,
        )
        assert result_99["mk_s"] == result_95["mk_s"] == 48
        assert result_99["trend"] == 2
        assert result_95["trend"] == 3


class TestCalcLPD:
    """Run the classification on a small stack."""

    def _stack(self):
        series = [
            np.full(16, 3000),
            3000 + 100 * K,
            6000 - 100 * K,
            3000 + K,
            np.full(16, 1500),
            np.full(16, 5000),
        ]
        return np.stack(series, axis=1).reshape(16, 2, 3)

    def test_stack(self, params):
        results = calc_lpd(params, PERIOD, TimeSeries(PERIOD.years, self._stack()))
        assert results.shape == (2, 3)
        assert results.period == PERIOD
        np.testing.assert_array_equal(results.lpd, [[3, 5, 1], [3, 4, 4]])
        np.testing.assert_array_equal(
            results.steadiness, [[3, 4, 1], [3, 3, 3]]
        )
        assert results.mk_s.dtype == np.int32
        assert results.lpd.dtype == np.int16

    def test_matches_pixels(self, params):
        stack = self._stack()
        results = calc_lpd(params, PERIOD, TimeSeries(PERIOD.years, stack))
        for row in range(2):
            for col in range(3):
                pixel = calc_lpd_pixel(params, PERIOD, stack[:, row, col])
                assert pixel["lpd"] == results.lpd[row, col]
                assert pixel["semi_final"] == results.semi_final[row, col]

    def test_water_indicator(self, params):
        water = np.array([[True, False, False], [False, False, True]])
        results = calc_lpd(
            params, PERIOD, TimeSeries(PERIOD.years, self._stack()), water
        )
        np.testing.assert_array_equal(results.lpd, [[0, 5, 1], [3, 4, 0]])
        np.testing.assert_array_equal(results.lpd_with_water, [[3, 5, 1], [3, 4, 4]])

    def test_water_indicator_wrong_shape(self, params):
        with pytest.raises(ValueError):
            calc_lpd(
                params,
                PERIOD,
                TimeSeries(PERIOD.years, self._stack()),
                np.zeros((3, 3), dtype=bool),
            )

    def test_period_not_covered(self, params):
        ts = TimeSeries(list(range(2002, 2018)), self._stack())
        with pytest.raises(TimeSeriesError):
            calc_lpd(params, PERIOD, ts)

    def test_config_checked_first(self, params):
        """Configuration errors are raised before the time series is read."""
        ts = TimeSeries(list(range(2002, 2018)), self._stack())
        with pytest.raises(KendallTableError):
            calc_lpd(params, Period(2002, 2004), ts)

    def test_undetermined_logged(self, params, caplog):
        stack = self._stack().astype(np.float64)
        stack[2:, 0, 0] = np.nan
        with caplog.at_level(logging.INFO, logger="lpd_algorithms.lpd.lpd"):
            results = calc_lpd(params, PERIOD, TimeSeries(PERIOD.years, stack))
        assert results.lpd[0, 0] == 0
        assert results.lpd[0, 1] == 5
        assert "1 of 6 pixels could not be classified" in caplog.text

    def test_bands(self, params):
        results = calc_lpd(params, PERIOD, TimeSeries(PERIOD.years, self._stack()))
        bands = results.bands()
        assert len(bands) == 18
        assert bands[0].name == config.LPD_BAND_NAME
        assert bands[0].add_to_map
        assert not any(band.add_to_map for band in bands[1:])
        assert bands[0].metadata == {"year_initial": 2000, "year_final": 2015}
        np.testing.assert_array_equal(bands[0].array, results.lpd)

    def test_empty_stack(self, params):
        """A stack with no pixels gives empty layers."""
        results = calc_lpd(
            params, PERIOD, TimeSeries(PERIOD.years, np.zeros((16, 0, 3)))
        )
        assert results.shape == (0, 3)
        assert results.state.shape == (0, 3)
        assert results.t1_class.shape == (0, 3)
