"""Value objects passed between the forecast, optimizer and ranker."""
import dataclasses
import math
import numbers

from charge_planner.config import CHARGER_SPECS, DEFAULT_SCENARIO
from charge_planner.errors import InvalidRequestError


def hour_label(hour):
    return f"{hour:02d}:00"


@dataclasses.dataclass(frozen=True)
class ChargingRequest:
    """Energy and time constraints for a single charging session.

    Charges are percentages of `battery_capacity_kwh`. The window is
    `[earliest_start_hour, latest_end_hour)` in hours of the day.
    """

    battery_capacity_kwh: float
    current_charge_pct: float
    target_charge_pct: float
    earliest_start_hour: int
    latest_end_hour: int
    charger_power_kw: float
    charger_efficiency: float

    @property
    def energy_needed_kwh(self):
        return (self.target_charge_pct - self.current_charge_pct) / 100 * self.battery_capacity_kwh

    @property
    def hours_required(self):
        energy = self.energy_needed_kwh
        if energy <= 0:
            return 0
        return math.ceil(energy / (self.charger_power_kw * self.charger_efficiency))

    def validate(self):
        """Raise InvalidRequestError if the request cannot be planned."""
        if self.battery_capacity_kwh <= 0:
            raise InvalidRequestError(f"battery capacity must be positive, got {self.battery_capacity_kwh}")
        if self.charger_power_kw <= 0:
            raise InvalidRequestError(f"charger power must be positive, got {self.charger_power_kw}")
        if not 0 < self.charger_efficiency <= 1:
            raise InvalidRequestError(f"charger efficiency must be in (0, 1], got {self.charger_efficiency}")
        for name in ("current_charge_pct", "target_charge_pct"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise InvalidRequestError(f"{name} must be between 0 and 100, got {value}")
        if self.target_charge_pct < self.current_charge_pct:
            raise InvalidRequestError(
                f"target charge {self.target_charge_pct}% is below current charge {self.current_charge_pct}%"
            )
        for name in ("earliest_start_hour", "latest_end_hour"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise InvalidRequestError(f"{name} must be a whole hour, got {value!r}")
            if not 0 <= value <= 23:
                raise InvalidRequestError(f"{name} must be between 0 and 23, got {value}")
        if self.earliest_start_hour >= self.latest_end_hour:
            raise InvalidRequestError(
                f"earliest start {self.earliest_start_hour} must be before latest end {self.latest_end_hour}"
            )
        return self


@dataclasses.dataclass(frozen=True)
class ChargeRecommendation:
    """Best contiguous charging block, or the no-op result when already at target."""

    start_hour: int | None = None
    duration_hours: int = 0
    hours_required: int = 0
    total_cost: float = 0.0
    avg_rate: float = 0.0
    energy_added_kwh: float = 0.0
    carbon_saved_g: float = 0.0
    optimal_hours: tuple = ()
    feasible: bool = True

    @classmethod
    def already_at_target(cls):
        return cls()

    @property
    def is_noop(self):
        return self.start_hour is None

    @property
    def end_hour(self):
        if self.is_noop:
            return None
        return self.start_hour + self.duration_hours

    @property
    def start_time(self):
        return "Already at target" if self.is_noop else hour_label(self.start_hour)

    @property
    def end_time(self):
        return "-" if self.is_noop else hour_label(self.end_hour)


@dataclasses.dataclass(frozen=True)
class V2GOpportunity:
    """One hour where selling stored energy back to the grid is on offer."""

    hour: int
    time: str
    sell_rate: float
    buy_rate: float
    profit: float
    potential: float
    duration_hours: int = 1


@dataclasses.dataclass(frozen=True)
class Scenario:
    """User-facing parameters that drive forecast generation and planning."""

    charger_type: str = DEFAULT_SCENARIO["charger_type"]
    battery_capacity_kwh: float = DEFAULT_SCENARIO["battery_capacity_kwh"]
    current_charge_pct: float = DEFAULT_SCENARIO["current_charge_pct"]
    target_charge_pct: float = DEFAULT_SCENARIO["target_charge_pct"]
    earliest_start_hour: int = DEFAULT_SCENARIO["earliest_start_hour"]
    latest_end_hour: int = DEFAULT_SCENARIO["latest_end_hour"]
    v2g_enabled: bool = DEFAULT_SCENARIO["v2g_enabled"]
    price_threshold: float = DEFAULT_SCENARIO["price_threshold"]
    simulation_speed: float = DEFAULT_SCENARIO["simulation_speed"]

    @property
    def charger(self):
        try:
            return CHARGER_SPECS[self.charger_type]
        except KeyError:
            raise InvalidRequestError(
                f"unknown charger type {self.charger_type!r}, expected one of {sorted(CHARGER_SPECS)}"
            ) from None

    def charging_request(self):
        charger = self.charger
        return ChargingRequest(
            battery_capacity_kwh=self.battery_capacity_kwh,
            current_charge_pct=self.current_charge_pct,
            target_charge_pct=self.target_charge_pct,
            earliest_start_hour=self.earliest_start_hour,
            latest_end_hour=self.latest_end_hour,
            charger_power_kw=charger["power"],
            charger_efficiency=charger["efficiency"],
        )

    def replace(self, **changes):
        return dataclasses.replace(self, **changes)

    def validate(self):
        if self.simulation_speed <= 0:
            raise InvalidRequestError(f"simulation speed must be positive, got {self.simulation_speed}")
        if self.price_threshold < 0:
            raise InvalidRequestError(f"price threshold must be non-negative, got {self.price_threshold}")
        self.charging_request().validate()
        return self
