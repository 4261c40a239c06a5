import dataclasses
import logging
import warnings
from typing import Optional

import numpy as np

from .. import stats
from . import config, lpd_numba
from .models import LPDParams, LPDResults, Period, TimeSeries

logger = logging.getLogger(__name__)


@dataclasses.dataclass()
class SteadinessLayers:
    mk_s: np.ndarray
    trend: np.ndarray
    mtid: np.ndarray
    mtid_sign: np.ndarray
    mtid_magnitude: np.ndarray
    steadiness: np.ndarray


@dataclasses.dataclass()
class StateLayers:
    t1_mean: np.ndarray
    t2_mean: np.ndarray
    t1_class: np.ndarray
    t2_class: np.ndarray
    state: np.ndarray


@dataclasses.dataclass()
class InitialBiomassLayers:
    initial_mean: np.ndarray
    initial_biomass: np.ndarray


def _nanmean(x, selected):
    # Mean over the selected years, ignoring missing values. Pixels with no
    # valid observation in the selection are NaN.
    if not np.any(selected):
        return np.full(x.shape[1], np.nan)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", category=RuntimeWarning)
        return np.nanmean(x[selected], axis=0)


def _nanpercentile(x, selected, percentiles):
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", category=RuntimeWarning)
        perc = np.nanpercentile(x[selected], percentiles, axis=0)

    # Keep one row per percentile, also for an empty block
    return np.ascontiguousarray(perc.reshape(len(percentiles), x.shape[1]))


def check_config(params: LPDParams, period: Period):
    """Validate a run configuration before any pixel is processed.

    Returns the Mann-Kendall critical value for the period.
    """
    params.validate()
    period.validate()

    return stats.get_kendall_coef(
        period.n_years, params.steadiness.significance_level
    )


def build_masks(params: LPDParams, x, water_indicator=None):
    """Calculate water and desert masks.

    Args:
        params: run parameters.
        x: float64 array (n_years, n_pixels), NaN where invalid.
        water_indicator: optional boolean array (n_pixels,) of persistent
            water from an external source.

    Returns:
        (water_mask, desert_mask), boolean arrays of shape (n_pixels,)
    """
    logger.debug("Entering build_masks function.")
    water_mask = lpd_numba.calc_water_mask(x, params.masks.water_min_years)
    if water_indicator is not None:
        water_mask = water_mask | np.asarray(water_indicator, dtype=bool).ravel()

    desert_mask = lpd_numba.calc_desert_mask(
        x, params.masks.desert_max_value * params.scale_factor
    )

    return water_mask, desert_mask


def calc_steadiness(params: LPDParams, x, kendall_s) -> SteadinessLayers:
    """Steadiness from a Mann-Kendall trend test combined with MTID.

    Pixels with fewer valid years than the shortest series covered by the
    Kendall tables are left as nodata.
    """
    logger.debug("Entering calc_steadiness function.")
    mk_s = stats.mann_kendall(x)
    trend = lpd_numba.classify_trend(mk_s, kendall_s)

    mtid = stats.mtid(x, config.MTID_LAST_YEARS)
    mtid_mean = _nanmean(x, np.ones(x.shape[0], dtype=bool))
    mtid_mean = mtid_mean * params.steadiness.mtid_sig_level
    mtid_sign = lpd_numba.classify_mtid_sign(mtid)
    mtid_magnitude = lpd_numba.classify_mtid_magnitude(mtid, mtid_mean)

    undetermined = stats.count_valid(x) < config.MIN_VALID_YEARS
    trend[undetermined] = config.NODATA_VALUE

    if params.steadiness.method == "mtid_sign":
        steadiness = lpd_numba.calc_steadiness(
            trend, mtid_sign, lpd_numba.STEADINESS_MTID_SIGN
        )
    else:
        steadiness = lpd_numba.calc_steadiness(
            trend, mtid_magnitude, lpd_numba.STEADINESS_MTID_MAGNITUDE
        )

    return SteadinessLayers(mk_s, trend, mtid, mtid_sign, mtid_magnitude, steadiness)


def calc_state(params: LPDParams, period: Period, x) -> StateLayers:
    """Emerging state from the movement of the initial and final period means
    through the deciles of a baseline period.
    """
    logger.debug("Entering calc_state function.")
    years = np.array(period.years)
    state_params = params.state

    baseline = years < period.year_initial + state_params.percentile_years
    perc = _nanpercentile(x, baseline, config.STATE_PERCENTILES)

    t1_mean = _nanmean(x, years < period.year_initial + state_params.t1t2_years)
    t2_mean = _nanmean(x, years > period.year_final - state_params.t1t2_years)
    t1_class = lpd_numba.classify_deciles(t1_mean, perc)
    t2_class = lpd_numba.classify_deciles(t2_mean, perc)

    state = lpd_numba.calc_state(
        t1_class,
        t2_class,
        t1_mean,
        t2_mean,
        state_params.sig_percentile_change,
        state_params.sig_value_change * params.scale_factor,
        state_params.sig_value_change_percent,
    )

    return StateLayers(t1_mean, t2_mean, t1_class, t2_class, state)


def calc_initial_biomass(params: LPDParams, period: Period, x) -> InitialBiomassLayers:
    logger.debug("Entering calc_initial_biomass function.")
    years = np.array(period.years)
    biomass_params = params.initial_biomass

    initial_mean = _nanmean(
        x, years < period.year_initial + biomass_params.initial_period_years
    )
    initial_mean = initial_mean / params.scale_factor
    initial_biomass = lpd_numba.calc_initial_biomass(
        initial_mean, biomass_params.low_biomass, biomass_params.high_biomass
    )

    return InitialBiomassLayers(initial_mean, initial_biomass)


def classify(steadiness, initial_biomass, state, water_mask, desert_mask):
    """Combine the sub-indicators into the final LPD classes.

    Returns (semi_final, lpd, lpd_with_water). Desert pixels are coded as
    stable in both products, water pixels are nodata in `lpd` only.
    """
    logger.debug("Entering classify function.")
    semi_final = lpd_numba.calc_semi_final(steadiness, initial_biomass, state)
    lpd_classes = lpd_numba.calc_lpd(semi_final)

    lpd = lpd_numba.apply_masks(
        lpd_classes, desert_mask, water_mask, config.DESERT_LPD_VALUE, True
    )
    lpd_with_water = lpd_numba.apply_masks(
        lpd_classes, desert_mask, water_mask, config.DESERT_LPD_VALUE, False
    )

    return semi_final, lpd, lpd_with_water


def calc_lpd(
    params: LPDParams,
    period: Period,
    time_series: TimeSeries,
    water_indicator: Optional[np.ndarray] = None,
    kendall_s: Optional[int] = None,
) -> LPDResults:
    """Compute FAO-WOCAT Land Productivity Dynamics for a time series.

    Args:
        params: run parameters.
        period: analysis period; must be covered by the time series.
        time_series: annual vegetation index stack.
        water_indicator: optional boolean array shaped like one layer of the
            stack, flagging persistent water from an external source.
        kendall_s: Mann-Kendall critical value, if the configuration has
            already been checked (used by the block worker).

    Returns:
        LPDResults with the final classes and every intermediate layer,
        shaped (rows, cols).

    Raises:
        ConfigurationError: if the parameters or period are invalid, including
            a period too short or too long for the Kendall tables.
        TimeSeriesError: if the time series doesn't cover the period.
    """
    logger.debug("Entering calc_lpd function.")

    if kendall_s is None:
        kendall_s = check_config(params, period)

    shape = time_series.shape
    window = time_series.window(period)
    x = np.ascontiguousarray(window.reshape(window.shape[0], -1))

    if water_indicator is not None:
        water_indicator = np.asarray(water_indicator, dtype=bool)
        if water_indicator.size != x.shape[1]:
            raise ValueError(
                f"Water indicator shape {water_indicator.shape} doesn't match "
                f"time series shape {shape}"
            )

    water_mask, desert_mask = build_masks(params, x, water_indicator)
    steadiness = calc_steadiness(params, x, kendall_s)
    state = calc_state(params, period, x)
    biomass = calc_initial_biomass(params, period, x)
    semi_final, lpd, lpd_with_water = classify(
        steadiness.steadiness,
        biomass.initial_biomass,
        state.state,
        water_mask,
        desert_mask,
    )

    n_undetermined = int(np.sum(semi_final == config.NODATA_VALUE))
    if n_undetermined > 0:
        logger.info(
            f"{n_undetermined} of {semi_final.size} pixels could not be "
            "classified (insufficient valid data)"
        )

    def _r(a):
        return a.reshape(shape)

    return LPDResults(
        lpd=_r(lpd),
        lpd_with_water=_r(lpd_with_water),
        semi_final=_r(semi_final),
        steadiness=_r(steadiness.steadiness),
        state=_r(state.state),
        initial_biomass=_r(biomass.initial_biomass),
        water_mask=_r(water_mask),
        desert_mask=_r(desert_mask),
        mk_s=_r(steadiness.mk_s),
        trend=_r(steadiness.trend),
        mtid=_r(steadiness.mtid),
        mtid_sign=_r(steadiness.mtid_sign),
        mtid_magnitude=_r(steadiness.mtid_magnitude),
        t1_mean=_r(state.t1_mean),
        t2_mean=_r(state.t2_mean),
        t1_class=_r(state.t1_class),
        t2_class=_r(state.t2_class),
        initial_mean=_r(biomass.initial_mean),
        period=period,
    )


def calc_lpd_pixel(
    params: LPDParams, period: Period, values, valid=None, years=None, water=False
):
    """Compute LPD for a single pixel.

    `values` (and `valid`) cover `years`, which default to the period years.
    Returns a dict of python scalars, one per layer of LPDResults.
    """
    if years is None:
        years = period.years
    time_series = TimeSeries.from_pixel(years, values, valid)
    water_indicator = np.array([[water]], dtype=bool)
    results = calc_lpd(params, period, time_series, water_indicator)

    return {
        field.name: getattr(results, field.name).item()
        for field in dataclasses.fields(results)
        if field.name != "period"
    }
