import math

import numpy as np
from scipy import stats


def spearman_or_none(xs, ys):
    """Spearman rank correlation as ``{rho, p_value}``; both are None when it is undefined for the data."""
    if len(xs) < 3 or len(xs) != len(ys):
        return {'rho': None, 'p_value': None}
    # Constant input has no ranking to correlate.
    if np.ptp(np.asarray(xs, dtype=float)) == 0 or np.ptp(np.asarray(ys, dtype=float)) == 0:
        return {'rho': None, 'p_value': None}
    result = stats.spearmanr(xs, ys)
    return {'rho': finite_or_none(result.statistic, 4), 'p_value': finite_or_none(result.pvalue, 5)}


def finite_or_none(value, digits=None):
    if value is None:
        return None
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        return None
    return round(value, digits) if digits is not None else value


def mean_or_none(values, digits=4):
    if not values:
        return None
    return finite_or_none(np.mean(values), digits)
