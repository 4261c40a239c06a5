import numba
import numpy as np


# Calculate the area of a slice of the globe from the equator to the parallel
# at latitude f (on WGS84 ellipsoid). Based on:
# https://gis.stackexchange.com/questions/127165/more-accurate-way-to-calculate-area-of-rasters
@numba.jit(nopython=True)
def slice_area(f):
    a = 6378137.0  # in meters
    b = 6356752.3142  # in meters,
    e = np.sqrt(1 - pow(b / a, 2))
    zp = 1 + e * np.sin(f)
    zm = 1 - e * np.sin(f)

    return (
        np.pi
        * pow(b, 2)
        * ((2 * np.arctanh(e * np.sin(f))) / (2 * e) + np.sin(f) / (zp * zm))
    )


# Formula to calculate area of a raster cell on WGS84 ellipsoid, following
# https://gis.stackexchange.com/questions/127165/more-accurate-way-to-calculate-area-of-rasters
@numba.jit(nopython=True)
def calc_cell_area(ymin, ymax, x_width):
    # ymin: minimum latitude
    # ymax: maximum latitude
    # x_width: width of cell in degrees
    if ymin > ymax:
        ymin, ymax = ymax, ymin

    return (slice_area(np.deg2rad(ymax)) - slice_area(np.deg2rad(ymin))) * (
        x_width / 360.0
    )


@numba.jit(nopython=True)
def calc_row_areas(lat, pixel_height, pixel_width, n_rows):
    """Area in square kilometers of one cell in each row of a lat/lon grid.

    `lat` is the latitude of the top edge of the first row, `pixel_height`
    is negative for north-up grids.
    """
    out = np.empty(n_rows, dtype=np.float64)
    for row in range(n_rows):
        out[row] = calc_cell_area(lat, lat + pixel_height, pixel_width) * 1e-6
        lat += pixel_height

    return out
