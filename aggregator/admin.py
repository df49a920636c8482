"""Process-wide administrative settings.

The haircut applied by the lenient policy and the oracle tolerance used
by executable quotes are the only mutable state in the aggregator. Both
start at defaults and can only be changed by the single operator.
"""

from __future__ import annotations

import threading

import structlog

from aggregator.constants import (
    DEFAULT_SLIPPAGE_BPS,
    DEFAULT_TOLERANCE_BPS,
    MAX_SLIPPAGE_BPS,
    MAX_TOLERANCE_BPS,
)
from aggregator.errors import SettingOutOfRangeError, UnauthorizedError
from aggregator.models.types import normalize_address

logger = structlog.get_logger()


class AdminSettings:
    """Operator-guarded haircut and tolerance.

    Reads are lock-free snapshots of ints; writes are serialized.

    Args:
        operator: Identity allowed to change settings
        slippage_bps: Initial haircut, strictly below `max_slippage_bps`
        tolerance_bps: Initial oracle tolerance, strictly below `max_tolerance_bps`
    """

    def __init__(
        self,
        operator: str,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
        tolerance_bps: int = DEFAULT_TOLERANCE_BPS,
        max_slippage_bps: int = MAX_SLIPPAGE_BPS,
        max_tolerance_bps: int = MAX_TOLERANCE_BPS,
    ) -> None:
        self._operator = normalize_address(operator)
        self._max_slippage_bps = max_slippage_bps
        self._max_tolerance_bps = max_tolerance_bps
        self._check_range("slippage_bps", slippage_bps, max_slippage_bps)
        self._check_range("tolerance_bps", tolerance_bps, max_tolerance_bps)
        self._slippage_bps = slippage_bps
        self._tolerance_bps = tolerance_bps
        self._lock = threading.Lock()

    @property
    def operator(self) -> str:
        return self._operator

    @property
    def slippage_bps(self) -> int:
        return self._slippage_bps

    @property
    def tolerance_bps(self) -> int:
        return self._tolerance_bps

    @property
    def max_slippage_bps(self) -> int:
        return self._max_slippage_bps

    @property
    def max_tolerance_bps(self) -> int:
        return self._max_tolerance_bps

    def set_slippage(self, caller: str, new_bps: int) -> None:
        """Change the lenient haircut.

        Raises:
            UnauthorizedError: If caller is not the operator
            SettingOutOfRangeError: If new_bps is negative or >= the maximum
        """
        with self._lock:
            self._authorize(caller, "slippage_bps")
            self._check_range("slippage_bps", new_bps, self._max_slippage_bps)
            old = self._slippage_bps
            self._slippage_bps = new_bps
        logger.info("slippage_updated", old_bps=old, new_bps=new_bps)

    def set_tolerance(self, caller: str, new_bps: int) -> None:
        """Change the oracle validation tolerance.

        Raises:
            UnauthorizedError: If caller is not the operator
            SettingOutOfRangeError: If new_bps is negative or >= the maximum
        """
        with self._lock:
            self._authorize(caller, "tolerance_bps")
            self._check_range("tolerance_bps", new_bps, self._max_tolerance_bps)
            old = self._tolerance_bps
            self._tolerance_bps = new_bps
        logger.info("tolerance_updated", old_bps=old, new_bps=new_bps)

    def _authorize(self, caller: str, setting: str) -> None:
        if normalize_address(caller) != self._operator:
            logger.warning("unauthorized_setting_change", caller=caller, setting=setting)
            raise UnauthorizedError(caller)

    @staticmethod
    def _check_range(name: str, value: int, maximum: int) -> None:
        if not isinstance(value, int) or isinstance(value, bool) or value < 0 or value >= maximum:
            raise SettingOutOfRangeError(name, value, maximum)


__all__ = ["AdminSettings"]
