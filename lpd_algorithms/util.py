import logging

logger = logging.getLogger(__name__)


def accumulate_dicts(z):
    # allow to handle items that may be None (comes up when a block had no
    # pixels for a layer)
    z = [item for item in z if item]

    if len(z) == 0:
        return {}
    elif len(z) == 1:
        return dict(z[0])

    out = dict(z[0])
    for d in z[1:]:
        for key, value in d.items():
            if key in out:
                out[key] += value
            else:
                out[key] = value

    return out


def log_progress(fraction, message=None, data=None):
    logger.info("%s - %.2f%%", message, 100 * fraction)
