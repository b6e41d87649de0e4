import pandas as pd
import pytest


def build_forecast(price=0.2, carbon=200.0, renewable=50.0, v2g_rate=0.0):
    """24-hour forecast with scalar or per-hour columns."""
    hours = range(24)
    df = pd.DataFrame({
        "time": [f"{h:02d}:00" for h in hours],
        "price_per_kWh": price,
        "demand": 85.0,
        "v2g_rate_per_kWh": v2g_rate,
        "grid_load_pct": 55.0,
        "renewable_pct": renewable,
        "carbon_intensity_g_per_kWh": carbon,
    }, index=pd.Index(hours, name="hour"))
    return df


@pytest.fixture
def make_forecast():
    return build_forecast


@pytest.fixture
def uniform_forecast():
    return build_forecast()
