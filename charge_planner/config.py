FORECAST_HOURS = 24            # one slot per hour of the day
BASE_REFRESH_INTERVAL_S = 15.0 # seconds between live market refreshes at 1x speed

# charger type: power in kW, efficiency (0-1), cost in $/kWh
CHARGER_SPECS = {
    "Level 1": {"power": 1.4, "efficiency": 0.85, "cost": 0.10},
    "Level 2": {"power": 7.2, "efficiency": 0.90, "cost": 0.15},
    "DC Fast": {"power": 50.0, "efficiency": 0.95, "cost": 0.35},
    "Tesla Supercharger": {"power": 120.0, "efficiency": 0.92, "cost": 0.45},
}

# Window score = COST_WEIGHT * sum(price) + CARBON_WEIGHT * sum(carbon) / sum(renewable)
COST_WEIGHT = 0.6
CARBON_WEIGHT = 0.4
REFERENCE_CARBON_INTENSITY = 400.0  # g/kWh baseline for carbon saved

V2G_RESERVE_PCT = 20.0        # never discharge below this state of charge
V2G_MAX_DISCHARGE_PCT = 60.0  # never offer more than this share of capacity
V2G_MAX_OPPORTUNITIES = 6
V2G_SELL_RATIO = 0.88         # sell-back rate as a fraction of the import price

DEFAULT_SCENARIO = {
    "charger_type": "Level 2",
    "battery_capacity_kwh": 75.0,
    "current_charge_pct": 20.0,
    "target_charge_pct": 80.0,
    "earliest_start_hour": 6,
    "latest_end_hour": 22,
    "v2g_enabled": True,
    "price_threshold": 0.25,
    "simulation_speed": 1.0,
}

LOG_LEVEL = 2  # multiplied by 10 for the console handler, i.e. INFO
