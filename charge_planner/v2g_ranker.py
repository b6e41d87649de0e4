from charge_planner.config import V2G_MAX_DISCHARGE_PCT, V2G_MAX_OPPORTUNITIES, V2G_RESERVE_PCT
from charge_planner.logger import logger
from charge_planner.models import V2GOpportunity


def dischargeable_energy_kwh(battery_capacity_kwh, current_charge_pct):
    """
    Energy that may be sold back to the grid.

    Keeps a reserve of V2G_RESERVE_PCT and never offers more than
    V2G_MAX_DISCHARGE_PCT of capacity. Negative when the battery is already
    below the reserve.
    """
    margin_pct = min(current_charge_pct - V2G_RESERVE_PCT, V2G_MAX_DISCHARGE_PCT)
    return battery_capacity_kwh * margin_pct / 100


def rank_opportunities(df, price_threshold, v2g_enabled, battery_capacity_kwh, current_charge_pct):
    """
    Rank hours by how attractive it is to sell stored energy back to the grid.

    Parameters
    ----------
    df : pd.DataFrame
        24-hour forecast indexed by hour. Must contain columns:
        - "time"
        - "price_per_kWh"
        - "v2g_rate_per_kWh"
    price_threshold : float
        Only hours priced strictly above this are considered.
    v2g_enabled : bool
        If False, nothing is offered.
    battery_capacity_kwh : float
        Total battery capacity in kWh.
    current_charge_pct : float
        Current state of charge as a percentage of capacity.

    Returns
    -------
    list of V2GOpportunity
        At most V2G_MAX_OPPORTUNITIES entries, highest sell rate first. Hours
        with equal rates keep forecast order.
    """
    if not v2g_enabled:
        return []

    eligible = df[df["price_per_kWh"] > price_threshold]
    ranked = eligible.sort_values("v2g_rate_per_kWh", ascending=False, kind="stable").head(V2G_MAX_OPPORTUNITIES)

    energy = dischargeable_energy_kwh(battery_capacity_kwh, current_charge_pct)
    if energy <= 0:
        logger.debug(f"Charge {current_charge_pct}% is at or below the {V2G_RESERVE_PCT}% V2G reserve")

    opportunities = []
    for hour, row in ranked.iterrows():
        sell_rate = float(row["v2g_rate_per_kWh"])
        buy_rate = float(row["price_per_kWh"])
        profit = sell_rate - buy_rate
        opportunities.append(V2GOpportunity(
            hour=int(hour),
            time=row["time"],
            sell_rate=sell_rate,
            buy_rate=buy_rate,
            profit=profit,
            potential=energy * profit,
        ))
    return opportunities
