"""
Order-statistic summaries over unordered sample sets.
Used per year for spending and once per run for legacy outcomes.
"""
import math
from typing import Dict, Iterable, List, Sequence, Union

import numpy as np

DEFAULT_FRACTIONS = (0.05, 0.5, 0.95)


def calculate_percentiles(samples: Iterable[float],
                          fractions: Sequence[float] = DEFAULT_FRACTIONS) -> Dict[Union[float, str], float]:
    """
    Nearest-rank percentiles (no interpolation) plus min and max.

    Args:
        samples: Values in any order
        fractions: Requested fractions in [0, 1]

    Returns:
        Dict keyed by each fraction plus 'min' and 'max'. All zeros when
        `samples` is empty.
    """
    values = np.sort(np.asarray(list(samples), dtype=float))

    if values.size == 0:
        result = {p: 0.0 for p in fractions}
        result['min'] = 0.0
        result['max'] = 0.0
        return result

    last = values.size - 1
    result = {}
    for p in fractions:
        index = max(0, min(last, math.floor(p * last)))
        result[p] = float(values[index])
    result['min'] = float(values[0])
    result['max'] = float(values[last])
    return result


def spending_percentiles_by_year(values_by_year: Sequence[Iterable[float]],
                                 fractions: Sequence[float] = DEFAULT_FRACTIONS) -> List[Dict[Union[float, str], float]]:
    """Apply calculate_percentiles independently to each year's samples"""
    return [calculate_percentiles(year_values, fractions) for year_values in values_by_year]


def percentile_series(summaries: Sequence[Dict[Union[float, str], float]],
                      key: Union[float, str]) -> np.ndarray:
    """Pull one percentile out of a list of per-year summaries"""
    return np.array([summary[key] for summary in summaries], dtype=float)
