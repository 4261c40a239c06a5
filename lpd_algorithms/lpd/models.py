import dataclasses
import numbers
from typing import Dict, List, Optional

import marshmallow
import marshmallow_dataclass
import numpy as np
from marshmallow import validate

from .. import ConfigurationError, TimeSeriesError
from . import config

STEADINESS_METHODS = ["mtid_magnitude", "mtid_sign"]


@marshmallow_dataclass.dataclass(frozen=True)
class Period:
    year_initial: int
    year_final: int

    @property
    def n_years(self):
        return self.year_final - self.year_initial + 1

    @property
    def years(self):
        return list(range(self.year_initial, self.year_final + 1))

    def validate(self):
        if self.year_final <= self.year_initial:
            raise ConfigurationError(
                f"Final year ({self.year_final}) must be after initial year "
                f"({self.year_initial})"
            )

    def metadata(self):
        return {"year_initial": self.year_initial, "year_final": self.year_final}


@marshmallow_dataclass.dataclass(frozen=True)
class SteadinessParams:
    significance_level: int = dataclasses.field(
        default=99, metadata={"validate": validate.OneOf([90, 95, 99])}
    )
    mtid_sig_level: float = dataclasses.field(
        default=1.0, metadata={"validate": validate.Range(min=0, max=1)}
    )
    method: str = dataclasses.field(
        default="mtid_magnitude",
        metadata={"validate": validate.OneOf(STEADINESS_METHODS)},
    )


@marshmallow_dataclass.dataclass(frozen=True)
class StateParams:
    percentile_years: int = dataclasses.field(
        default=15, metadata={"validate": validate.Range(min=1)}
    )
    t1t2_years: int = dataclasses.field(
        default=4, metadata={"validate": validate.Range(min=1)}
    )
    sig_percentile_change: int = dataclasses.field(
        default=2, metadata={"validate": validate.Range(min=1, max=9)}
    )
    sig_value_change: float = dataclasses.field(
        default=0.05, metadata={"validate": validate.Range(min=0, max=1)}
    )
    sig_value_change_percent: float = dataclasses.field(
        default=0.1, metadata={"validate": validate.Range(min=0, max=1)}
    )


@marshmallow_dataclass.dataclass(frozen=True)
class InitialBiomassParams:
    initial_period_years: int = dataclasses.field(
        default=3, metadata={"validate": validate.Range(min=1)}
    )
    low_biomass: float = dataclasses.field(
        default=0.4, metadata={"validate": validate.Range(min=0, max=1)}
    )
    high_biomass: float = dataclasses.field(
        default=0.7, metadata={"validate": validate.Range(min=0, max=1)}
    )


@marshmallow_dataclass.dataclass(frozen=True)
class MaskParams:
    desert_max_value: float = dataclasses.field(
        default=0.2, metadata={"validate": validate.Range(min=0, max=1)}
    )
    water_min_years: int = dataclasses.field(
        default=5, metadata={"validate": validate.Range(min=1)}
    )


@marshmallow_dataclass.dataclass(frozen=True)
class LPDParams:
    """Parameters for a Land Productivity Dynamics run.

    Thresholds (biomass levels, minimum significant change, desert maximum)
    are in native index units (e.g. NDVI). `scale_factor` converts them to
    the units of the time series (10000 for NDVI stored as scaled
    integers).
    """

    steadiness: SteadinessParams = dataclasses.field(default_factory=SteadinessParams)
    state: StateParams = dataclasses.field(default_factory=StateParams)
    initial_biomass: InitialBiomassParams = dataclasses.field(
        default_factory=InitialBiomassParams
    )
    masks: MaskParams = dataclasses.field(default_factory=MaskParams)
    scale_factor: float = dataclasses.field(
        default=10000.0,
        metadata={"validate": validate.Range(min=0, min_inclusive=False)},
    )

    def to_dict(self):
        return self.Schema().dump(self)

    @classmethod
    def from_dict(cls, data):
        try:
            params = cls.Schema().load(data)
        except marshmallow.ValidationError as e:
            raise ConfigurationError(f"Invalid LPD parameters: {e.messages}")
        params.validate()

        return params

    def validate(self):
        errors = self.Schema().validate(self.to_dict())
        # Dumping casts floats in integer fields, so check the types directly
        for group_name in ("steadiness", "state", "initial_biomass", "masks"):
            group = getattr(self, group_name)
            for field in dataclasses.fields(group):
                value = getattr(group, field.name)
                is_integer = isinstance(value, numbers.Integral) and not isinstance(
                    value, bool
                )
                if field.type is int and not is_integer:
                    errors.setdefault(group_name, {})[field.name] = [
                        "Not a valid integer."
                    ]
        if errors:
            raise ConfigurationError(f"Invalid LPD parameters: {errors}")

        if self.initial_biomass.low_biomass >= self.initial_biomass.high_biomass:
            raise ConfigurationError(
                f"Low biomass threshold ({self.initial_biomass.low_biomass}) "
                "must be less than high biomass threshold "
                f"({self.initial_biomass.high_biomass})"
            )


PREDEFINED_PARAMS = {
    "Broad Detection Mode": LPDParams(
        steadiness=SteadinessParams(significance_level=95, mtid_sig_level=0),
        state=StateParams(sig_value_change_percent=0),
    ),
    "Priority Area Mode": LPDParams(),
    "Balanced Mode": LPDParams(
        steadiness=SteadinessParams(significance_level=95, mtid_sig_level=0.5),
        state=StateParams(sig_value_change_percent=0.05),
    ),
}

DEFAULT_PARAMS_NAME = "Priority Area Mode"

PERIODS = {
    "Baseline": Period(2000, 2015),
    "Reporting Period 1": Period(2004, 2019),
    "Reporting Period 2": Period(2008, 2023),
}


def get_predefined_params(name=DEFAULT_PARAMS_NAME) -> LPDParams:
    try:
        return PREDEFINED_PARAMS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown parameter set '{name}' (must be one of "
            f"{list(PREDEFINED_PARAMS)})"
        )


def get_period(name) -> Period:
    try:
        return PERIODS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown period '{name}' (must be one of {list(PERIODS)})"
        )


@dataclasses.dataclass()
class TimeSeries:
    """Annual vegetation index stack.

    `values` is shaped (n_years, rows, cols). A single pixel may be given as
    a 1D array of length n_years, and a 2D array is read as
    (n_years, n_pixels). `valid` flags usable observations; if omitted, any
    finite value other than the nodata value is valid.
    """

    years: List[int]
    values: np.ndarray
    valid: Optional[np.ndarray] = None

    def __post_init__(self):
        self.years = [int(year) for year in self.years]
        self.values = _as_stack(np.asarray(self.values))

        if self.valid is None:
            self.valid = np.isfinite(self.values) & (
                self.values != config.NODATA_VALUE
            )
        else:
            self.valid = _as_stack(np.asarray(self.valid, dtype=bool))

        if len(self.years) == 0:
            raise TimeSeriesError("Time series has no years")
        if any(b - a != 1 for a, b in zip(self.years[:-1], self.years[1:])):
            raise TimeSeriesError(
                f"Time series years must be contiguous and increasing: {self.years}"
            )
        if self.values.shape[0] != len(self.years):
            raise TimeSeriesError(
                f"Time series has {len(self.years)} years but values have "
                f"{self.values.shape[0]} layers"
            )
        if self.valid.shape != self.values.shape:
            raise TimeSeriesError(
                f"Validity flags shape {self.valid.shape} doesn't match values "
                f"shape {self.values.shape}"
            )

    @classmethod
    def from_pixel(cls, years, values, valid=None):
        values = np.asarray(values).reshape(-1, 1, 1)
        if valid is not None:
            valid = np.asarray(valid, dtype=bool).reshape(-1, 1, 1)

        return cls(years, values, valid)

    @property
    def shape(self):
        return self.values.shape[1:]

    def window(self, period: Period) -> np.ndarray:
        """Return the period's layers as float64, with NaN where invalid"""
        if (
            period.year_initial < self.years[0]
            or period.year_final > self.years[-1]
        ):
            raise TimeSeriesError(
                f"Period {period.year_initial}-{period.year_final} is not "
                f"covered by the time series ({self.years[0]}-{self.years[-1]})"
            )
        start = period.year_initial - self.years[0]
        end = period.year_final - self.years[0] + 1
        out = self.values[start:end].astype(np.float64)
        out[~self.valid[start:end]] = np.nan

        return out

    def block(self, x, y, win_xsize, win_ysize):
        return TimeSeries(
            self.years,
            self.values[:, y : y + win_ysize, x : x + win_xsize],
            self.valid[:, y : y + win_ysize, x : x + win_xsize],
        )


def _as_stack(a):
    if a.ndim == 1:
        return a.reshape(a.shape[0], 1, 1)
    elif a.ndim == 2:
        return a.reshape(a.shape[0], 1, a.shape[1])
    elif a.ndim == 3:
        return a
    else:
        raise TimeSeriesError(
            f"Time series must have 1 to 3 dimensions (got {a.ndim})"
        )


@dataclasses.dataclass()
class LPDBand:
    name: str
    array: np.ndarray
    metadata: dict
    add_to_map: bool = False


@dataclasses.dataclass()
class LPDResults:
    lpd: np.ndarray
    lpd_with_water: np.ndarray
    semi_final: np.ndarray
    steadiness: np.ndarray
    state: np.ndarray
    initial_biomass: np.ndarray
    water_mask: np.ndarray
    desert_mask: np.ndarray
    mk_s: np.ndarray
    trend: np.ndarray
    mtid: np.ndarray
    mtid_sign: np.ndarray
    mtid_magnitude: np.ndarray
    t1_mean: np.ndarray
    t2_mean: np.ndarray
    t1_class: np.ndarray
    t2_class: np.ndarray
    initial_mean: np.ndarray
    period: Optional[Period] = None

    @property
    def shape(self):
        return self.lpd.shape

    def bands(self) -> List[LPDBand]:
        metadata = self.period.metadata() if self.period else {}
        layers = [
            (config.LPD_BAND_NAME, self.lpd, True),
            (config.LPD_WITH_WATER_BAND_NAME, self.lpd_with_water, False),
            (config.SEMI_FINAL_BAND_NAME, self.semi_final, False),
            (config.STEADINESS_BAND_NAME, self.steadiness, False),
            (config.STATE_BAND_NAME, self.state, False),
            (config.INITIAL_BIOMASS_BAND_NAME, self.initial_biomass, False),
            (config.WATER_MASK_BAND_NAME, self.water_mask, False),
            (config.DESERT_MASK_BAND_NAME, self.desert_mask, False),
            (config.MK_BAND_NAME, self.mk_s, False),
            (config.TREND_BAND_NAME, self.trend, False),
            (config.MTID_BAND_NAME, self.mtid, False),
            (config.MTID_SIGN_BAND_NAME, self.mtid_sign, False),
            (config.MTID_MAGNITUDE_BAND_NAME, self.mtid_magnitude, False),
            (config.T1_MEAN_BAND_NAME, self.t1_mean, False),
            (config.T2_MEAN_BAND_NAME, self.t2_mean, False),
            (config.T1_CLASS_BAND_NAME, self.t1_class, False),
            (config.T2_CLASS_BAND_NAME, self.t2_class, False),
            (config.INITIAL_MEAN_BAND_NAME, self.initial_mean, False),
        ]

        return [
            LPDBand(name, array, dict(metadata), add_to_map)
            for name, array, add_to_map in layers
        ]


@marshmallow_dataclass.dataclass
class SummaryTableLPD:
    lpd_summary: Dict[int, float]
    lpd_with_water_summary: Dict[int, float]
    steadiness_summary: Dict[int, float]
    state_summary: Dict[int, float]
    initial_biomass_summary: Dict[int, float]
