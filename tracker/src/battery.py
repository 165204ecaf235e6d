"""
Battery state-of-charge integrator.

Integrates net panel power (generation minus system consumption) over the
wall-clock time elapsed since the previous integration and keeps the
result clamped to [0, 100] percent. The BatteryIntegrator owns the single
BatteryState of the process; nothing else writes to it.

Edge cases handled without raising:
- Zero elapsed time is a no-op.
- Negative elapsed time (clock skew, out-of-order samples) is a no-op and
  never moves the integration instant backwards.
- Very large gaps (e.g. after a long pause) are absorbed by the clamp.
- Non-finite inputs are ignored.

CHANGELOG:
- 2026-10-14: Initial creation (STORY-104)

TODO:
- None
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime

from tracker.src.constants import BATTERY_CAPACITY_WH, DEFAULT_BATTERY_PERCENT
from tracker.src.physics import clamp

logger = logging.getLogger(__name__)


@dataclass
class BatteryState:
    """Mutable battery accumulator state.

    Attributes:
        charge_percent: State of charge in percent (0-100).
        last_integration_at: Instant of the last integration step, or None
            before the first sample.
    """

    charge_percent: float = DEFAULT_BATTERY_PERCENT
    last_integration_at: datetime | None = None


def integrate_charge(
    charge_percent: float,
    net_power_w: float,
    elapsed_s: float,
    capacity_wh: float = BATTERY_CAPACITY_WH,
) -> float:
    """Return the new state of charge after one integration step.

    ``energy_wh = net_power_w * elapsed_s / 3600`` and the charge moves by
    ``energy_wh / capacity_wh * 100`` percent, clamped to [0, 100].

    Args:
        charge_percent: Current state of charge in percent.
        net_power_w: Generation minus consumption in watts (may be negative).
        elapsed_s: Seconds since the previous integration.
        capacity_wh: Battery capacity in watt-hours.

    Returns:
        The clamped new state of charge. Returns the input charge unchanged
        when elapsed_s <= 0 or any input is not finite.
    """
    if elapsed_s <= 0 or not (math.isfinite(net_power_w) and math.isfinite(elapsed_s)):
        return clamp(charge_percent, 0.0, 100.0)
    energy_wh = net_power_w * elapsed_s / 3600.0
    delta_percent = energy_wh / capacity_wh * 100.0
    return clamp(charge_percent + delta_percent, 0.0, 100.0)


class BatteryIntegrator:
    """Stateful owner of the process-wide BatteryState.

    Args:
        state: Initial state; defaults to DEFAULT_BATTERY_PERCENT with no
            previous integration instant.
        capacity_wh: Battery capacity in watt-hours.
    """

    def __init__(
        self,
        state: BatteryState | None = None,
        *,
        capacity_wh: float = BATTERY_CAPACITY_WH,
    ) -> None:
        self._state = state if state is not None else BatteryState()
        self._capacity_wh = capacity_wh

    @property
    def state(self) -> BatteryState:
        """A copy of the current state (mutating it has no effect)."""
        return replace(self._state)

    @property
    def charge_percent(self) -> float:
        return self._state.charge_percent

    def seed(self, charge_percent: float, at: datetime | None) -> None:
        """Reset the state, e.g. from the last persisted history entry."""
        self._state.charge_percent = clamp(charge_percent, 0.0, 100.0)
        self._state.last_integration_at = at
        logger.info("Battery seeded at %.1f%% (as of %s)", charge_percent, at)

    def integrate(self, net_power_w: float, at: datetime) -> float:
        """Integrate net power from the last integration instant up to *at*.

        The first call only records the instant. Calls with an instant at or
        before the last one leave the state untouched.

        Args:
            net_power_w: Generation minus consumption in watts.
            at: Instant of the sample being integrated.

        Returns:
            The state of charge after the step.
        """
        last = self._state.last_integration_at
        if last is None:
            self._state.last_integration_at = at
            return self._state.charge_percent

        elapsed_s = (at - last).total_seconds()
        if elapsed_s < 0:
            logger.warning(
                "Sample at %s is %.1fs older than last integration, skipping",
                at.isoformat(),
                -elapsed_s,
            )
            return self._state.charge_percent
        if elapsed_s == 0:
            return self._state.charge_percent

        self._state.charge_percent = integrate_charge(
            self._state.charge_percent,
            net_power_w,
            elapsed_s,
            self._capacity_wh,
        )
        self._state.last_integration_at = at
        return self._state.charge_percent
