import logging
import multiprocessing
from typing import Optional, Tuple

import numpy as np

from .. import util
from . import config
from .lpd import calc_lpd, check_config
from .models import LPDParams, LPDResults, Period, TimeSeries

logger = logging.getLogger(__name__)

# Float layers are NaN where undetermined, masks are False, and integer
# layers use the int16 nodata value
_FLOAT_LAYERS = ("mtid", "t1_mean", "t2_mean", "initial_mean")
_BOOL_LAYERS = ("water_mask", "desert_mask")
_LPD_LAYERS = ("lpd", "lpd_with_water")
_INT16_LAYERS = (
    "semi_final",
    "steadiness",
    "state",
    "initial_biomass",
    "trend",
    "mtid_sign",
    "mtid_magnitude",
    "t1_class",
    "t2_class",
)


def _process_block(args):
    params, period, time_series, water_indicator, kendall_s, x, y = args
    results = calc_lpd(params, period, time_series, water_indicator, kendall_s)

    return x, y, results


class LPDWorker:
    """Compute LPD over a large stack one block at a time.

    Each block is processed independently, so results don't depend on the
    block size or number of workers.
    """

    def __init__(
        self,
        params: LPDParams,
        period: Period,
        time_series: TimeSeries,
        water_indicator: Optional[np.ndarray] = None,
        block_size: Tuple[int, int] = (256, 256),
        n_workers: int = 1,
    ):
        self.params = params
        self.period = period
        self.time_series = time_series
        if water_indicator is not None:
            water_indicator = np.asarray(water_indicator, dtype=bool)
            if water_indicator.size != np.prod(time_series.shape):
                raise ValueError(
                    f"Water indicator shape {water_indicator.shape} doesn't match "
                    f"time series shape {time_series.shape}"
                )
            water_indicator = water_indicator.reshape(time_series.shape)
        self.water_indicator = water_indicator
        self.block_size = block_size
        self.n_workers = n_workers

    def is_killed(self):
        return False

    def emit_progress(self, *args, **kwargs):
        """Reimplement to display progress messages - only log significant milestones"""
        if len(args) > 0:
            fraction = args[0]
            if fraction in [0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0]:
                util.log_progress(*args, message="Processing land productivity dynamics")

    def _blocks(self, kendall_s):
        ysize, xsize = self.time_series.shape
        x_block_size, y_block_size = self.block_size

        for y in range(0, ysize, y_block_size):
            win_ysize = min(y_block_size, ysize - y)
            for x in range(0, xsize, x_block_size):
                win_xsize = min(x_block_size, xsize - x)
                water = None
                if self.water_indicator is not None:
                    water = self.water_indicator[
                        y : y + win_ysize, x : x + win_xsize
                    ]
                yield (
                    self.params,
                    self.period,
                    self.time_series.block(x, y, win_xsize, win_ysize),
                    water,
                    kendall_s,
                    x,
                    y,
                )

    def _setup_output(self):
        shape = self.time_series.shape
        out = {}
        for name in _FLOAT_LAYERS:
            out[name] = np.full(shape, np.nan, dtype=np.float64)
        for name in _BOOL_LAYERS:
            out[name] = np.zeros(shape, dtype=bool)
        for name in _LPD_LAYERS:
            out[name] = np.full(shape, config.LPD_NODATA_VALUE, dtype=np.int16)
        for name in _INT16_LAYERS:
            out[name] = np.full(shape, config.NODATA_VALUE, dtype=np.int16)
        out["mk_s"] = np.zeros(shape, dtype=np.int32)

        return out

    def work(self) -> Optional[LPDResults]:
        # Fail on configuration errors before any block is processed
        kendall_s = check_config(self.params, self.period)

        ysize, xsize = self.time_series.shape
        x_block_size, y_block_size = self.block_size
        x_blocks = (xsize + x_block_size - 1) // x_block_size  # Ceiling division
        y_blocks = (ysize + y_block_size - 1) // y_block_size  # Ceiling division
        n_blocks = x_blocks * y_blocks
        logger.info(
            f"Processing {xsize}x{ysize} pixels in {x_block_size}x{y_block_size} "
            f"blocks ({n_blocks} total, {self.n_workers} worker(s))"
        )

        out = self._setup_output()
        progress_increment = 1.0 / n_blocks if n_blocks > 0 else 1.0
        n = 0

        if self.n_workers > 1:
            ctx = multiprocessing.get_context("spawn")
            with ctx.Pool(self.n_workers) as pool:
                for x, y, results in pool.imap_unordered(
                    _process_block, self._blocks(kendall_s)
                ):
                    if self.is_killed():
                        logger.info(
                            "Processing killed by user after processing "
                            f"{n} out of {n_blocks} blocks."
                        )
                        pool.terminate()
                        return None
                    self._write_block(out, x, y, results)
                    n += 1
                    self.emit_progress(n * progress_increment)
        else:
            for args in self._blocks(kendall_s):
                if self.is_killed():
                    logger.info(
                        "Processing killed by user after processing "
                        f"{n} out of {n_blocks} blocks."
                    )
                    return None
                self.emit_progress(n * progress_increment)
                x, y, results = _process_block(args)
                self._write_block(out, x, y, results)
                n += 1

        self.emit_progress(1)

        return LPDResults(period=self.period, **out)

    @staticmethod
    def _write_block(out, x, y, results):
        win_ysize, win_xsize = results.shape
        for name, array in out.items():
            array[y : y + win_ysize, x : x + win_xsize] = getattr(results, name)
