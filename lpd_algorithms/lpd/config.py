import numpy as np

# Ensure nodata values are saved as 16 bit integers to keep numba happy
NODATA_VALUE = np.int16(-32768)

# Final LPD value for masked or undetermined pixels
LPD_NODATA_VALUE = np.int16(0)

# Value forced on desert pixels (desert is treated as stable)
DESERT_LPD_VALUE = np.int16(4)

# Number of final years averaged for the MTID reference value
MTID_LAST_YEARS = 3

# Minimum number of valid observations needed to classify a pixel (the
# shortest series covered by the Kendall coefficient tables)
MIN_VALID_YEARS = 4

STATE_PERCENTILES = [0, 10, 20, 30, 40, 50, 60, 70, 80, 90, 100]

LPD_BAND_NAME = "Land Productivity Dynamics (from FAO-WOCAT)"
LPD_WITH_WATER_BAND_NAME = "Land Productivity Dynamics (from FAO-WOCAT, with water)"
SEMI_FINAL_BAND_NAME = "Land Productivity Dynamics (semi-final, 1-36)"
STEADINESS_BAND_NAME = "Steadiness"
STATE_BAND_NAME = "Emerging state"
INITIAL_BIOMASS_BAND_NAME = "Initial biomass"
WATER_MASK_BAND_NAME = "Water mask"
DESERT_MASK_BAND_NAME = "Desert mask"
MK_BAND_NAME = "Mann-Kendall S statistic"
TREND_BAND_NAME = "Mann-Kendall trend (sig-/no sig/sig+)"
MTID_BAND_NAME = "MTID"
MTID_SIGN_BAND_NAME = "MTID (1/2)"
MTID_MAGNITUDE_BAND_NAME = "MTID (1/2/3)"
T1_MEAN_BAND_NAME = "Emerging state mean (initial period)"
T2_MEAN_BAND_NAME = "Emerging state mean (final period)"
T1_CLASS_BAND_NAME = "Emerging state classes (initial period)"
T2_CLASS_BAND_NAME = "Emerging state classes (final period)"
INITIAL_MEAN_BAND_NAME = "Initial biomass mean"

LPD_CLASS_KEY = {
    "Increasing": 5,
    "Stable": 4,
    "Stable but stressed": 3,
    "Moderate decline": 2,
    "Declining": 1,
    "No data": LPD_NODATA_VALUE,
}

STEADINESS_CLASS_KEY = {
    "Strong decline": 1,
    "Moderate decline": 2,
    "Moderate improvement": 3,
    "Strong improvement": 4,
    "No data": NODATA_VALUE,
}

STATE_CLASS_KEY = {
    "Decline": 1,
    "Stable": 2,
    "Improvement": 3,
    "No data": NODATA_VALUE,
}

INITIAL_BIOMASS_CLASS_KEY = {
    "Low": 1,
    "Medium": 2,
    "High": 3,
    "No data": NODATA_VALUE,
}
