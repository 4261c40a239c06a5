import numba
import numpy as np

# Ensure nodata values are saved as 16 bit integers to keep numba happy
NODATA_VALUE = np.array([-32768], dtype=np.int16)

# Steadiness from Mann-Kendall trend class (rows: 1 sig decline, 2 no sig
# trend, 3 sig increase) and MTID class. MTID helps when the trend isn't
# significant.
# fmt: off
STEADINESS_MTID_MAGNITUDE = np.array(
    [
        [1, 2, 2],  # T-  (MTID-, MTID0, MTID+)
        [2, 3, 3],  # T0
        [3, 3, 4],  # T+
    ],
    dtype=np.int16,
)
STEADINESS_MTID_SIGN = np.array(
    [
        [1, 2],  # T-  (MTID-, MTID+)
        [2, 3],  # T0
        [3, 4],  # T+
    ],
    dtype=np.int16,
)

# LPD class for each semi-final class (index 0 is unused)
SEMI_FINAL_TO_LPD = np.array(
    [0,
     1, 1, 1, 1, 1, 1, 1, 1,
     2, 2, 2, 2, 2, 2,
     3, 3, 3, 3, 3, 3, 3, 3,
     4, 4, 4, 4, 4, 4, 4,
     5, 5, 5, 5, 5, 5, 5],
    dtype=np.int16,
)
# fmt: on


@numba.jit(nopython=True)
def calc_water_mask(x, min_years):
    # Water is any pixel at or below zero for at least min_years years
    n_years = x.shape[0]
    n_pixels = x.shape[1]
    out = np.zeros(n_pixels, dtype=np.bool_)

    for p in range(n_pixels):
        count = 0
        for k in range(n_years):
            if not np.isnan(x[k, p]) and x[k, p] <= 0:
                count += 1
        out[p] = count >= min_years

    return out


@numba.jit(nopython=True)
def calc_desert_mask(x, max_value):
    # Desert is any pixel that never went over max_value in the period
    n_years = x.shape[0]
    n_pixels = x.shape[1]
    out = np.zeros(n_pixels, dtype=np.bool_)

    for p in range(n_pixels):
        found = False
        max_seen = 0.0
        for k in range(n_years):
            value = x[k, p]
            if np.isnan(value):
                continue
            if not found or value > max_seen:
                max_seen = value
            found = True
        out[p] = found and max_seen <= max_value

    return out


@numba.jit(nopython=True)
def classify_trend(mk_s, kendall_s):
    """Code Mann-Kendall S into 3 classes.

    1: negative trend, significant
    2: no significant trend
    3: positive trend, significant

    |S| equal to the critical value counts as significant.
    """
    out = np.full(mk_s.shape[0], 2, dtype=np.int16)
    out[(mk_s < 0) & (np.abs(mk_s) >= kendall_s)] = 1
    out[(mk_s > 0) & (np.abs(mk_s) >= kendall_s)] = 3

    return out


@numba.jit(nopython=True)
def classify_mtid_sign(mtid):
    # 1: MTID <= 0, 2: MTID > 0
    out = np.full(mtid.shape[0], NODATA_VALUE[0], dtype=np.int16)

    for i in range(mtid.shape[0]):
        if np.isnan(mtid[i]):
            continue
        if mtid[i] > 0:
            out[i] = 2
        else:
            out[i] = 1

    return out


@numba.jit(nopython=True)
def classify_mtid_magnitude(mtid, mtid_mean):
    """Code MTID into 3 classes using the (scaled) period mean as threshold.

    1: negative and |MTID| >= |mean|
    2: |MTID| below |mean|
    3: positive and |MTID| >= |mean|
    """
    out = np.full(mtid.shape[0], NODATA_VALUE[0], dtype=np.int16)

    for i in range(mtid.shape[0]):
        if np.isnan(mtid[i]) or np.isnan(mtid_mean[i]):
            continue
        significant = abs(mtid[i]) >= abs(mtid_mean[i])
        if mtid[i] < 0 and significant:
            out[i] = 1
        elif mtid[i] > 0 and significant:
            out[i] = 3
        else:
            out[i] = 2

    return out


@numba.jit(nopython=True)
def calc_steadiness(trend, mtid_class, table):
    out = np.full(trend.shape[0], NODATA_VALUE[0], dtype=np.int16)

    for i in range(trend.shape[0]):
        t = trend[i]
        m = mtid_class[i]
        if t < 1 or t > table.shape[0] or m < 1 or m > table.shape[1]:
            continue
        out[i] = table[t - 1, m - 1]

    return out


@numba.jit(nopython=True)
def classify_deciles(mean, perc):
    """Reclassify a mean into classes 1 to 10 using baseline percentiles.

    `perc` holds the 0, 10, ..., 100 percentiles, shaped (11, n_pixels).
    Class 1 is at or below p10, class 10 above p90.
    """
    out = np.full(mean.shape[0], NODATA_VALUE[0], dtype=np.int16)

    for i in range(mean.shape[0]):
        value = mean[i]
        if np.isnan(value) or np.isnan(perc[1, i]):
            continue
        c = 1
        for k in range(1, 10):
            if value > perc[k, i]:
                c = k + 1
        out[i] = c

    return out


@numba.jit(nopython=True)
def calc_state(
    t1_class,
    t2_class,
    t1_mean,
    t2_mean,
    sig_percentile_change,
    sig_value_change,
    sig_value_change_percent,
):
    """Emerging state from the change in percentile class between periods.

    1: decline, 2: stable, 3: improvement. Small absolute or relative
    differences in the means are stable whatever the class change, as in
    areas with little variability a class jump may have no biological
    meaning.
    """
    out = np.full(t1_class.shape[0], NODATA_VALUE[0], dtype=np.int16)

    for i in range(t1_class.shape[0]):
        if t1_class[i] == NODATA_VALUE[0] or t2_class[i] == NODATA_VALUE[0]:
            continue
        delta = t2_class[i] - t1_class[i]
        if delta <= -sig_percentile_change:
            out[i] = 1
        elif delta >= sig_percentile_change:
            out[i] = 3
        else:
            out[i] = 2

        diff = abs(t1_mean[i] - t2_mean[i])
        if diff <= sig_value_change:
            out[i] = 2
        if diff <= t1_mean[i] * sig_value_change_percent:
            out[i] = 2

    return out


@numba.jit(nopython=True)
def calc_initial_biomass(initial_mean, low_biomass, high_biomass):
    # 1: low (<= low), 2: medium, 3: high (>= high)
    out = np.full(initial_mean.shape[0], NODATA_VALUE[0], dtype=np.int16)

    for i in range(initial_mean.shape[0]):
        value = initial_mean[i]
        if np.isnan(value):
            continue
        if value <= low_biomass:
            out[i] = 1
        elif value >= high_biomass:
            out[i] = 3
        else:
            out[i] = 2

    return out


@numba.jit(nopython=True)
def calc_semi_final(steadiness, biomass, state):
    """Combine steadiness (1-4), initial biomass (1-3) and state (1-3).

    Gives the 36 combinations, enumerated with steadiness outermost and
    state innermost.
    """
    out = np.full(steadiness.shape[0], NODATA_VALUE[0], dtype=np.int16)

    for i in range(steadiness.shape[0]):
        a = steadiness[i]
        b = biomass[i]
        c = state[i]
        if a < 1 or a > 4 or b < 1 or b > 3 or c < 1 or c > 3:
            continue
        out[i] = (a - 1) * 9 + (b - 1) * 3 + (c - 1) + 1

    return out


@numba.jit(nopython=True)
def calc_lpd(semi_final):
    # Group the 36 combinations into the 5 LPD classes. 0 is no data.
    out = np.zeros(semi_final.shape[0], dtype=np.int16)

    for i in range(semi_final.shape[0]):
        value = semi_final[i]
        if value >= 1 and value <= 36:
            out[i] = SEMI_FINAL_TO_LPD[value]

    return out


@numba.jit(nopython=True)
def apply_masks(lpd, desert_mask, water_mask, desert_value, mask_water):
    out = lpd.copy()
    out[desert_mask] = desert_value
    if mask_water:
        out[water_mask] = 0

    return out
