import dataclasses
from datetime import datetime, UTC

import pandas as pd

from charge_planner.forecast import validate_forecast
from charge_planner.logger import logger
from charge_planner.models import ChargeRecommendation, Scenario
from charge_planner.v2g_ranker import rank_opportunities
from charge_planner.window_optimizer import find_optimal_window


@dataclasses.dataclass(frozen=True, eq=False)
class PlanSnapshot:
    """Everything derived from one forecast. Replaced, never updated.

    `forecast` is a private copy taken when the pass finished. Consumers must
    treat it as read-only; copy it before changing anything.
    """

    scenario: Scenario
    forecast: pd.DataFrame
    recommendation: ChargeRecommendation
    opportunities: tuple
    generated_at: datetime


def run_pipeline(scenario, provider):
    """
    Generate a forecast for `scenario` and plan charging and V2G against it.

    Parameters
    ----------
    scenario : Scenario
        Charger, battery, time window and V2G settings.
    provider : ForecastProvider
        Anything with a `generate(scenario)` method returning a 24-hour forecast.

    Returns
    -------
    PlanSnapshot

    Raises
    ------
    InvalidRequestError
        If the scenario is invalid. Raised before the provider is called.
    ForecastError
        If the provider returns a malformed forecast.
    """
    scenario.validate()

    forecast = validate_forecast(provider.generate(scenario))
    recommendation = find_optimal_window(forecast, scenario.charging_request())
    opportunities = rank_opportunities(
        forecast,
        price_threshold=scenario.price_threshold,
        v2g_enabled=scenario.v2g_enabled,
        battery_capacity_kwh=scenario.battery_capacity_kwh,
        current_charge_pct=scenario.current_charge_pct,
    )

    # snapshot owns its copy of the forecast
    forecast = forecast.copy()

    logger.debug(
        f"Planned {scenario.charger_type}: charge {recommendation.start_time}-{recommendation.end_time}, "
        f"{len(opportunities)} V2G opportunities"
    )
    return PlanSnapshot(
        scenario=scenario,
        forecast=forecast,
        recommendation=recommendation,
        opportunities=tuple(opportunities),
        generated_at=datetime.now(UTC),
    )
