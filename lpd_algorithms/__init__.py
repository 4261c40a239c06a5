import re

try:
    from lpd_algorithms._version import __version__, __git_sha__, __git_date__
except ImportError:
    __version__ = "unknown"
    __git_sha__ = "unknown"
    __git_date__ = "unknown"
    import logging

    logging.warning(
        "lpd_algorithms version could not be determined. "
        "If you're running from source, please run 'invoke set-version' first. "
        "If you're running from a package, this may indicate a packaging issue."
    )

__version_major__ = re.sub(r"([0-9]+)(\.[0-9]+)+.*$", r"\g<1>", __version__)
__release_date__ = __git_date__


class LPDAlgorithmsError(Exception):
    """Base class for exceptions in this module."""

    def __init__(self, msg=None):
        if msg is None:
            msg = "An error occurred in the lpd_algorithms module"
        super().__init__(msg)


class ConfigurationError(LPDAlgorithmsError):
    """Invalid parameters or analysis period"""

    def __init__(self, msg="Invalid LPD configuration"):
        super().__init__(msg)


class KendallTableError(ConfigurationError):
    """No Mann-Kendall critical value for the requested period length"""

    def __init__(self, msg="No Kendall coefficient available"):
        super().__init__(msg)


class TimeSeriesError(LPDAlgorithmsError):
    """Malformed vegetation index time series"""

    def __init__(self, msg="Invalid time series"):
        super().__init__(msg)
