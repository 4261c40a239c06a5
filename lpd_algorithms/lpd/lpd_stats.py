import logging
from typing import List

import numpy as np

from .. import util
from . import config
from .models import LPDResults, SummaryTableLPD

logger = logging.getLogger(__name__)

LPD_CLASSES = sorted(int(value) for value in config.LPD_CLASS_KEY.values())


def class_totals(a, weights=None, classes=None):
    """Total of `weights` (or count of pixels) for each class in `a`.

    Args:
        a: integer array of classes.
        weights: optional array broadcastable to `a`, e.g. cell areas shaped
            (rows, 1).
        classes: classes to always include in the output, with a total of
            zero if absent from `a`.
    """
    values, inverse = np.unique(np.asarray(a).ravel(), return_inverse=True)
    if weights is None:
        totals = np.bincount(inverse.ravel(), minlength=values.size).astype(
            np.float64
        )
    else:
        w = np.broadcast_to(weights, np.shape(a)).ravel().astype(np.float64)
        totals = np.bincount(inverse.ravel(), weights=w, minlength=values.size)

    out = {int(value): float(total) for value, total in zip(values, totals)}
    if classes is not None:
        for value in classes:
            out.setdefault(int(value), 0.0)

    return out


def summarise_lpd(results: LPDResults, cell_areas=None) -> SummaryTableLPD:
    """Tally pixel counts (or areas, if `cell_areas` is given) per class"""
    logger.debug("Entering summarise_lpd function.")

    return SummaryTableLPD(
        lpd_summary=class_totals(results.lpd, cell_areas, LPD_CLASSES),
        lpd_with_water_summary=class_totals(
            results.lpd_with_water, cell_areas, LPD_CLASSES
        ),
        steadiness_summary=class_totals(results.steadiness, cell_areas),
        state_summary=class_totals(results.state, cell_areas),
        initial_biomass_summary=class_totals(results.initial_biomass, cell_areas),
    )


def accumulate_summary_tables(tables: List[SummaryTableLPD]) -> SummaryTableLPD:
    if len(tables) == 1:
        return tables[0]

    return SummaryTableLPD(
        lpd_summary=util.accumulate_dicts([t.lpd_summary for t in tables]),
        lpd_with_water_summary=util.accumulate_dicts(
            [t.lpd_with_water_summary for t in tables]
        ),
        steadiness_summary=util.accumulate_dicts(
            [t.steadiness_summary for t in tables]
        ),
        state_summary=util.accumulate_dicts([t.state_summary for t in tables]),
        initial_biomass_summary=util.accumulate_dicts(
            [t.initial_biomass_summary for t in tables]
        ),
    )


def label_summary(summary, class_key=None):
    """Key a class summary by label, e.g. {"Increasing": 12.5, ...}

    `class_key` maps labels to class codes and defaults to the LPD classes.
    """
    if class_key is None:
        class_key = config.LPD_CLASS_KEY

    return {name: summary.get(int(code), 0.0) for name, code in class_key.items()}
