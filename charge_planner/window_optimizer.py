import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from charge_planner.config import CARBON_WEIGHT, COST_WEIGHT, REFERENCE_CARBON_INTENSITY
from charge_planner.errors import ForecastError
from charge_planner.logger import logger
from charge_planner.models import ChargeRecommendation


def candidate_hours(df, earliest_start_hour, latest_end_hour):
    """Forecast rows a charging session may use, in forecast order."""
    last_hour = min(23, latest_end_hour - 1)
    return df[(df.index >= earliest_start_hour) & (df.index <= last_hour)]


def window_scores(candidates, window_length):
    """
    Score every contiguous window of `window_length` candidate hours.

    Parameters
    ----------
    candidates : pd.DataFrame
        Must contain columns:
        - "price_per_kWh"
        - "carbon_intensity_g_per_kWh"
        - "renewable_pct"
    window_length : int
        Number of consecutive hours in each window (at most len(candidates)).

    Returns
    -------
    np.ndarray
        One score per window start, COST_WEIGHT * price sum plus
        CARBON_WEIGHT * carbon/renewable ratio. A window with no renewable
        share scores +inf.
    """
    def window_sums(column):
        values = candidates[column].to_numpy(dtype=float)
        return sliding_window_view(values, window_length).sum(axis=1)

    cost = window_sums("price_per_kWh")
    carbon = window_sums("carbon_intensity_g_per_kWh")
    renewable = window_sums("renewable_pct")

    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = carbon / renewable
    ratio = np.where(renewable > 0, ratio, np.inf)

    return COST_WEIGHT * cost + CARBON_WEIGHT * ratio


def find_optimal_window(df, request):
    """
    Find the contiguous block of hours that minimises the blended cost/carbon score.

    Parameters
    ----------
    df : pd.DataFrame
        24-hour forecast indexed by hour (see forecast.validate_forecast).
    request : ChargingRequest
        Energy, power and time-window constraints.

    Returns
    -------
    ChargeRecommendation
        The no-op recommendation if no energy is needed. Otherwise the
        lowest-scoring window; equal scores go to the earliest start. If the
        window is too short for the energy needed, the whole available window
        is returned with `feasible=False`.

    Raises
    ------
    InvalidRequestError
        If the request fails validation.
    """
    request.validate()

    energy_needed = request.energy_needed_kwh
    if energy_needed <= 0:
        return ChargeRecommendation.already_at_target()

    hours_required = request.hours_required
    candidates = candidate_hours(df, request.earliest_start_hour, request.latest_end_hour)
    if candidates.empty:
        raise ForecastError(
            f"forecast has no hours between {request.earliest_start_hour:02d}:00 and {request.latest_end_hour:02d}:00"
        )

    window_length = min(hours_required, len(candidates))
    feasible = window_length == hours_required
    if not feasible:
        logger.warning(
            f"Charging needs {hours_required}h but only {len(candidates)}h are available "
            f"between {request.earliest_start_hour:02d}:00 and {request.latest_end_hour:02d}:00"
        )

    scores = window_scores(candidates, window_length)
    best = int(np.argmin(scores))  # first minimum, so ties go to the earliest start
    window = candidates.iloc[best:best + window_length]

    price_sum = window["price_per_kWh"].sum()
    delivered_per_hour = request.charger_power_kw * request.charger_efficiency
    carbon_saved = (REFERENCE_CARBON_INTENSITY - window["carbon_intensity_g_per_kWh"]).sum()

    recommendation = ChargeRecommendation(
        start_hour=int(window.index[0]),
        duration_hours=window_length,
        hours_required=hours_required,
        total_cost=float(price_sum * delivered_per_hour),
        avg_rate=float(price_sum / window_length),
        energy_added_kwh=float(min(energy_needed, window_length * delivered_per_hour)),
        carbon_saved_g=float(carbon_saved),
        optimal_hours=tuple(int(h) for h in window.index),
        feasible=feasible,
    )
    logger.debug(
        f"Best window {recommendation.start_time}-{recommendation.end_time} "
        f"score={scores[best]:.4f} cost={recommendation.total_cost:.2f}"
    )
    return recommendation
