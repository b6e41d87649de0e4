import typing

import numpy as np
import pandas as pd

from charge_planner.config import FORECAST_HOURS, V2G_SELL_RATIO
from charge_planner.errors import ForecastError
from charge_planner.models import hour_label

FORECAST_COLUMNS = [
    "time",
    "price_per_kWh",
    "demand",
    "v2g_rate_per_kWh",
    "grid_load_pct",
    "renewable_pct",
    "carbon_intensity_g_per_kWh",
]

NUMERIC_COLUMNS = [c for c in FORECAST_COLUMNS if c != "time"]

PEAK_HOURS = set(range(7, 10)) | set(range(17, 21))


class ForecastProvider(typing.Protocol):
    def generate(self, scenario) -> pd.DataFrame:
        ...


# ---------------------------
# VALIDATION
# ---------------------------

def validate_forecast(df):
    """
    Check that `df` is a complete hourly forecast.

    Parameters
    ----------
    df : pd.DataFrame
        Forecast indexed by hour of day.

    Returns
    -------
    pd.DataFrame
        The same frame, so the call can be chained.

    Raises
    ------
    ForecastError
        If there are not exactly 24 rows with hours 0-23 in ascending order,
        a required column is missing, a numeric column holds missing or
        non-numeric values, or prices/rates are negative.
    """
    if not isinstance(df, pd.DataFrame):
        raise ForecastError(f"forecast must be a DataFrame, got {type(df).__name__}")

    missing = [c for c in FORECAST_COLUMNS if c not in df.columns]
    if missing:
        raise ForecastError(f"forecast is missing columns: {missing}")

    if len(df) != FORECAST_HOURS:
        raise ForecastError(f"forecast must have {FORECAST_HOURS} hourly records, got {len(df)}")

    if not pd.api.types.is_integer_dtype(df.index) or list(df.index) != list(range(FORECAST_HOURS)):
        raise ForecastError("forecast must be indexed by hours 0-23 in ascending order without gaps")

    for column in NUMERIC_COLUMNS:
        if not pd.api.types.is_numeric_dtype(df[column]):
            raise ForecastError(f"{column} must be numeric, got {df[column].dtype}")
        if df[column].isna().any():
            hours = df.index[df[column].isna()].tolist()
            raise ForecastError(f"{column} is missing values for hours {hours}")

    for column in ("price_per_kWh", "v2g_rate_per_kWh"):
        if (df[column] < 0).any():
            raise ForecastError(f"{column} must be non-negative")

    return df


def v2g_rates(prices, price_threshold, v2g_enabled):
    """Sell-back rate per hour: a share of the price when V2G is on and the price clears the threshold."""
    if not v2g_enabled:
        return pd.Series(0.0, index=prices.index)
    return (prices * V2G_SELL_RATIO).where(prices > price_threshold, 0.0).round(3)


# ---------------------------
# SYNTHETIC MARKET
# ---------------------------

class SyntheticForecastProvider:
    """
    Simulated day-ahead market that responds to the scenario.

    Prices rise with simulation speed and battery size, demand peaks in the
    morning (07-09) and evening (17-20), and renewables peak around 13:00
    with carbon intensity falling as they rise.

    Parameters
    ----------
    seed : int or None
        Seed for the random generator. The same seed and scenario produce the
        same sequence of forecasts.
    """

    def __init__(self, seed=None):
        self.rng = np.random.default_rng(seed)

    def demand_multiplier(self, hour, earliest_start_hour, latest_end_hour):
        if hour in PEAK_HOURS:
            return 2.2 + self.rng.random() * 0.8
        if earliest_start_hour <= hour <= latest_end_hour:
            return 1.3 + self.rng.random() * 0.4
        return 0.5 + self.rng.random() * 0.3

    def generate(self, scenario):
        """
        Build a 24-hour forecast for `scenario`.

        Returns
        -------
        pd.DataFrame indexed by hour, with the forecast columns plus `savings`.
        """
        charger = scenario.charger
        base_price = 0.08 + scenario.simulation_speed * 0.02
        grid_impact = min(2.0, scenario.battery_capacity_kwh / 75)
        charger_impact = charger["power"] / 50

        rows = []
        for hour in range(FORECAST_HOURS):
            multiplier = self.demand_multiplier(hour, scenario.earliest_start_hour, scenario.latest_end_hour)
            price = base_price * multiplier * grid_impact
            grid_load = 55 + (multiplier - 1) * 35 * charger_impact + self.rng.random() * 8
            renewable = max(5.0, 85 - abs(13 - hour) * 4 + self.rng.random() * 25)
            carbon = max(50.0, 400 - renewable * 3 + self.rng.random() * 50)
            savings = (base_price - price) * charger["power"] if price < base_price else 0.0

            rows.append({
                "hour": hour,
                "time": hour_label(hour),
                "price_per_kWh": round(price, 3),
                "demand": round(multiplier * 85, 1),
                "grid_load_pct": round(grid_load, 1),
                "renewable_pct": round(renewable, 1),
                "carbon_intensity_g_per_kWh": float(round(carbon)),
                "savings": round(savings, 2),
            })

        df = pd.DataFrame(rows).set_index("hour")
        df.insert(
            3, "v2g_rate_per_kWh",
            v2g_rates(df["price_per_kWh"], scenario.price_threshold, scenario.v2g_enabled),
        )
        return validate_forecast(df)


# ---------------------------
# CSV
# ---------------------------

class CsvForecastProvider:
    """
    Forecast read from a CSV file with one row per hour.

    The file needs an `hour` column and the price, demand, grid load,
    renewable and carbon columns. `time` is derived from the hour if absent,
    and `v2g_rate_per_kWh` is derived from the scenario's V2G settings if
    absent. Supplied rates are zeroed where the price is at or below the
    threshold, or everywhere when V2G is off.
    """

    def __init__(self, path):
        self.path = path

    def generate(self, scenario):
        try:
            df = pd.read_csv(self.path)
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
            raise ForecastError(f"cannot read forecast from {self.path}: {exc}") from exc
        if "hour" not in df.columns:
            raise ForecastError(f"{self.path} has no 'hour' column")
        df = df.set_index("hour")

        if not pd.api.types.is_integer_dtype(df.index):
            raise ForecastError(f"{self.path} has missing or fractional hours")
        if "time" not in df.columns:
            df["time"] = [hour_label(h) for h in df.index]
        if "price_per_kWh" in df.columns and pd.api.types.is_numeric_dtype(df["price_per_kWh"]):
            prices = df["price_per_kWh"]
            if "v2g_rate_per_kWh" not in df.columns:
                df["v2g_rate_per_kWh"] = v2g_rates(prices, scenario.price_threshold, scenario.v2g_enabled)
            elif not scenario.v2g_enabled:
                df["v2g_rate_per_kWh"] = 0.0
            else:
                # supplied rates only apply above the threshold
                df["v2g_rate_per_kWh"] = df["v2g_rate_per_kWh"].where(prices > scenario.price_threshold, 0.0)

        return validate_forecast(df)
