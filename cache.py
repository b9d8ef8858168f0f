"""
Memoization of simulation results so display-only changes do not re-simulate.
"""
import hashlib
import logging
from dataclasses import asdict
from typing import Callable, Optional

from simulation import SimulationSettings, SimulationResults, DISPLAY_FIELDS, run_monte_carlo

logger = logging.getLogger(__name__)


def financial_params_hash(settings: SimulationSettings) -> str:
    """Hash of every setting that affects simulated values (display flags excluded)"""
    params = asdict(settings)
    for name in DISPLAY_FIELDS:
        params.pop(name, None)
    params_str = str(sorted(params.items()))
    return hashlib.md5(params_str.encode()).hexdigest()


class SimulationCache:
    """Holds the results of the last run, keyed on its financial parameters"""

    def __init__(self, runner: Callable[[SimulationSettings], SimulationResults] = run_monte_carlo):
        self.runner = runner
        self._key: Optional[str] = None
        self._results: Optional[SimulationResults] = None

    @property
    def results(self) -> Optional[SimulationResults]:
        return self._results

    def is_current(self, settings: SimulationSettings) -> bool:
        return self._results is not None and self._key == financial_params_hash(settings)

    def get_or_run(self, settings: SimulationSettings, force: bool = False) -> SimulationResults:
        """
        Return cached results when only display flags changed, otherwise simulate.

        Args:
            settings: Current settings
            force: Re-simulate even if the financial parameters are unchanged
        """
        key = financial_params_hash(settings)
        if not force and self._results is not None and key == self._key:
            logger.debug("Cache hit for %s", key)
            return self._results

        logger.debug("Cache miss for %s (force=%s)", key, force)
        results = self.runner(settings)
        self._key = key
        self._results = results
        return results

    def invalidate(self) -> None:
        self._key = None
        self._results = None

    def invalidate_if_changed(self, settings: SimulationSettings) -> bool:
        """Drop cached results whose financial parameters differ from `settings`. Returns True if dropped."""
        if self._results is None or self.is_current(settings):
            return False
        logger.debug("Financial parameters changed, dropping results for %s", self._key)
        self.invalidate()
        return True
