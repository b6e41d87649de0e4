import argparse
import asyncio

import pandas as pd

from charge_planner.config import CHARGER_SPECS, DEFAULT_SCENARIO
from charge_planner.forecast import CsvForecastProvider, SyntheticForecastProvider
from charge_planner.logger import console, set_logging_level
from charge_planner.models import Scenario
from charge_planner.pipeline import run_pipeline
from charge_planner.refresh import RefreshScheduler


def print_snapshot(snapshot):
    rec = snapshot.recommendation
    if rec.is_noop:
        console.print("Charging: already at target")
    else:
        console.print(
            f"Charging: {rec.start_time} -> {rec.end_time} ({rec.duration_hours}h), "
            f"cost ${rec.total_cost:.2f}, avg ${rec.avg_rate:.3f}/kWh, "
            f"{rec.energy_added_kwh:.1f} kWh, carbon saved {rec.carbon_saved_g:.0f} g"
        )
        if not rec.feasible:
            console.print(f"[yellow]Window too short: {rec.hours_required}h needed[/yellow]")

    if not snapshot.opportunities:
        console.print("V2G: no opportunities")
    for opp in snapshot.opportunities:
        console.print(
            f"V2G {opp.time}: sell {opp.sell_rate:.3f} buy {opp.buy_rate:.3f} "
            f"profit {opp.profit:.3f} potential ${opp.potential:.2f}"
        )


async def watch(scheduler, ticks):
    async with scheduler:
        await asyncio.sleep(scheduler.interval * ticks + scheduler.interval / 2)


def parse_args():
    parser = argparse.ArgumentParser(description="Recommend when to charge an EV and when to sell back to the grid.")
    parser.add_argument("--charger", choices=sorted(CHARGER_SPECS), default=DEFAULT_SCENARIO["charger_type"])
    parser.add_argument("--capacity", type=float, default=DEFAULT_SCENARIO["battery_capacity_kwh"])
    parser.add_argument("--current", type=float, default=DEFAULT_SCENARIO["current_charge_pct"])
    parser.add_argument("--target", type=float, default=DEFAULT_SCENARIO["target_charge_pct"])
    parser.add_argument("--earliest", type=int, default=DEFAULT_SCENARIO["earliest_start_hour"])
    parser.add_argument("--latest", type=int, default=DEFAULT_SCENARIO["latest_end_hour"])
    parser.add_argument("--no-v2g", action="store_true")
    parser.add_argument("--threshold", type=float, default=DEFAULT_SCENARIO["price_threshold"])
    parser.add_argument("--speed", type=float, default=DEFAULT_SCENARIO["simulation_speed"])
    parser.add_argument("--csv", help="read the forecast from a CSV instead of simulating it")
    parser.add_argument("--seed", type=int)
    parser.add_argument("--watch", type=int, default=0, metavar="TICKS",
                        help="keep refreshing for this many timer ticks")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args()


def main():
    args = parse_args()
    if args.verbose:
        set_logging_level(1)

    scenario = Scenario(
        charger_type=args.charger,
        battery_capacity_kwh=args.capacity,
        current_charge_pct=args.current,
        target_charge_pct=args.target,
        earliest_start_hour=args.earliest,
        latest_end_hour=args.latest,
        v2g_enabled=not args.no_v2g,
        price_threshold=args.threshold,
        simulation_speed=args.speed,
    )
    provider = CsvForecastProvider(args.csv) if args.csv else SyntheticForecastProvider(seed=args.seed)

    if args.watch:
        scheduler = RefreshScheduler(provider, scenario, on_refresh=print_snapshot)
        asyncio.run(watch(scheduler, args.watch))
        return

    snapshot = run_pipeline(scenario, provider)
    pd.set_option('display.max_columns', None)
    print(snapshot.forecast)
    print_snapshot(snapshot)


if __name__ == "__main__":
    main()
