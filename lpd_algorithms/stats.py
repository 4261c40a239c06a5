import numba
import numpy as np

from . import KendallTableError

# Mann-Kendall critical values of S for two-sided tests at the 90, 95 and
# 99% levels. The first entry of each list is for a series of length 4. From
# table A.30 of Nonparametric Statistical Methods, second edition, Hollander &
# Wolfe.
# fmt: off
KENDALL_COEFS = {
    90: [
        4, 6, 7, 9, 10, 12, 15, 17, 18, 22, 23, 27, 28, 32, 35, 37, 40, 42,
        45, 49, 52, 56, 59, 61, 66, 68, 73, 75, 80, 84, 87, 91, 94, 98, 103,
        107, 110, 114, 119, 123, 128, 132, 135, 141, 144, 150, 153, 159, 162,
        168, 173, 177, 182, 186, 191, 197, 202,
    ],
    95: [
        4, 6, 9, 11, 14, 16, 19, 21, 24, 26, 31, 33, 36, 40, 43, 47, 50, 54,
        59, 63, 66, 70, 75, 79, 84, 88, 93, 97, 102, 106, 111, 115, 120, 126,
        131, 137, 142, 146, 151, 157, 162, 168, 173, 179, 186, 190, 197, 203,
        208, 214, 221, 227, 232, 240, 245, 251, 258,
    ],
    99: [
        6, 8, 11, 15, 18, 22, 25, 29, 34, 38, 41, 47, 50, 56, 61, 65, 70, 76,
        81, 87, 92, 98, 105, 111, 116, 124, 129, 135, 142, 150, 155, 163, 170,
        176, 183, 191, 198, 206, 213, 221, 228, 236, 245, 253, 260, 268, 277,
        285, 294, 302, 311, 319, 328, 336, 345, 355, 364,
    ],
}
# fmt: on

KENDALL_MIN_N = 4
KENDALL_MAX_N = KENDALL_MIN_N + len(KENDALL_COEFS[95]) - 1


def get_kendall_coef(n, level=95):
    """Return the critical value of the Mann-Kendall S statistic.

    Args:
        n: number of years in the series.
        level: significance level, one of 90, 95 or 99.

    Raises:
        KendallTableError: if the level is unknown or n is outside the range
            covered by the table.
    """
    if level not in KENDALL_COEFS:
        raise KendallTableError(
            f"Unknown significance level {level} (must be one of "
            f"{sorted(KENDALL_COEFS)})"
        )
    if n < KENDALL_MIN_N or n > KENDALL_MAX_N:
        raise KendallTableError(
            f"No Kendall coefficient for a series of {n} years (table covers "
            f"{KENDALL_MIN_N} to {KENDALL_MAX_N} years)"
        )
    # The minus 4 is because the first entry is for a sample size of 4
    return KENDALL_COEFS[level][n - KENDALL_MIN_N]


@numba.jit(nopython=True)
def mann_kendall(x):
    """Calculate Mann Kendall's S statistic for each pixel.

    S is the number of concordant minus the number of discordant year pairs.
    Pairs including a missing (NaN) observation are skipped. The sum is done
    in integer arithmetic so the result is exact.

    Args:
        x: float64 array of shape (n_years, n_pixels), NaN where invalid.

    Returns:
        int32 array of shape (n_pixels,).
    """
    n_years = x.shape[0]
    n_pixels = x.shape[1]
    out = np.zeros(n_pixels, dtype=np.int32)

    for p in range(n_pixels):
        s = 0
        for k in range(n_years - 1):
            current = x[k, p]
            if np.isnan(current):
                continue
            for j in range(k + 1, n_years):
                following = x[j, p]
                if np.isnan(following):
                    continue
                if current < following:
                    s += 1
                elif current > following:
                    s -= 1
        out[p] = s

    return out


@numba.jit(nopython=True)
def mtid(x, n_last):
    """Multi Temporal Image Differencing (Guo et al. 2008).

    Sums the difference between the mean of the last `n_last` years and every
    year but the last. Using a mean of the final years rather than the final
    year alone reduces the impact of outliers.

    Args:
        x: float64 array of shape (n_years, n_pixels), NaN where invalid.
        n_last: number of final years averaged into the reference value.

    Returns:
        float64 array of shape (n_pixels,), NaN where none of the last
        `n_last` years is valid.
    """
    n_years = x.shape[0]
    n_pixels = x.shape[1]
    out = np.empty(n_pixels, dtype=np.float64)

    for p in range(n_pixels):
        last_total = 0.0
        last_count = 0
        for k in range(max(0, n_years - n_last), n_years):
            if not np.isnan(x[k, p]):
                last_total += x[k, p]
                last_count += 1
        if last_count == 0:
            out[p] = np.nan
            continue
        last_mean = last_total / last_count

        total = 0.0
        for k in range(n_years - 1):
            if not np.isnan(x[k, p]):
                total += last_mean - x[k, p]
        out[p] = total

    return out


@numba.jit(nopython=True)
def count_valid(x):
    n_years = x.shape[0]
    n_pixels = x.shape[1]
    out = np.zeros(n_pixels, dtype=np.int32)

    for p in range(n_pixels):
        for k in range(n_years):
            if not np.isnan(x[k, p]):
                out[p] += 1

    return out
