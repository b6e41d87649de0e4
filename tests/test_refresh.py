import asyncio

import pytest

from charge_planner.errors import ForecastError, InvalidRequestError
from charge_planner.forecast import CsvForecastProvider
from charge_planner.models import Scenario
from charge_planner.refresh import RefreshScheduler


class CountingProvider:
    def __init__(self, make_forecast):
        self.make_forecast = make_forecast
        self.calls = 0
        self.fail = False

    def generate(self, scenario):
        self.calls += 1
        if self.fail:
            raise ForecastError("market feed unavailable")
        return self.make_forecast(price=0.1 + 0.01 * self.calls)


@pytest.fixture
def provider(make_forecast):
    return CountingProvider(make_forecast)


def test_interval_scales_with_speed(provider):
    scheduler = RefreshScheduler(provider, Scenario(simulation_speed=2))
    assert scheduler.interval == pytest.approx(7.5)


def test_refresh_publishes_snapshot(provider):
    seen = []
    scheduler = RefreshScheduler(provider, on_refresh=seen.append)
    assert scheduler.snapshot is None

    snapshot = scheduler.refresh()

    assert scheduler.snapshot is snapshot
    assert seen == [snapshot]


def test_update_replans_before_returning(provider):
    scheduler = RefreshScheduler(provider)
    scheduler.refresh()

    snapshot = scheduler.update(target_charge_pct=20)

    assert provider.calls == 2
    assert snapshot.recommendation.is_noop
    assert scheduler.scenario.target_charge_pct == 20


def test_invalid_update_keeps_previous_plan(provider):
    scheduler = RefreshScheduler(provider)
    before = scheduler.refresh()

    with pytest.raises(InvalidRequestError):
        scheduler.update(latest_end_hour=2)

    assert scheduler.snapshot is before
    assert scheduler.scenario.latest_end_hour == 22


def test_failed_refresh_keeps_previous_plan(provider):
    scheduler = RefreshScheduler(provider)
    before = scheduler.refresh()

    provider.fail = True
    with pytest.raises(ForecastError):
        scheduler.refresh()
    assert scheduler.snapshot is before


def test_start_needs_event_loop(provider):
    scheduler = RefreshScheduler(provider)
    with pytest.raises(RuntimeError):
        scheduler.start()


@pytest.mark.asyncio
async def test_timer_refreshes_periodically(provider):
    scheduler = RefreshScheduler(provider, base_interval=0.02)

    async with scheduler:
        assert provider.calls == 1
        await asyncio.sleep(0.11)

    assert provider.calls >= 3
    assert not scheduler.running


@pytest.mark.asyncio
async def test_no_refresh_after_exit(provider):
    async with RefreshScheduler(provider, base_interval=0.01):
        await asyncio.sleep(0.03)
    calls = provider.calls

    await asyncio.sleep(0.05)
    assert provider.calls == calls


@pytest.mark.asyncio
async def test_update_restarts_single_timer(provider):
    scheduler = RefreshScheduler(provider, base_interval=10)
    async with scheduler:
        first = scheduler._task
        scheduler.update(simulation_speed=2)
        second = scheduler._task

        await asyncio.sleep(0.01)
        assert first is not second
        assert first.cancelled()
        assert scheduler.running
        assert scheduler.interval == pytest.approx(5)


@pytest.mark.asyncio
async def test_start_twice_keeps_one_timer(provider):
    scheduler = RefreshScheduler(provider, base_interval=10)
    scheduler.start()
    first = scheduler._task
    scheduler.start()

    await asyncio.sleep(0.01)
    assert first.cancelled()
    assert scheduler.running
    await scheduler.stop()
    assert not scheduler.running


@pytest.mark.asyncio
async def test_failed_tick_keeps_timer_running(provider):
    scheduler = RefreshScheduler(provider, base_interval=0.01)
    async with scheduler:
        before = scheduler.snapshot
        provider.fail = True
        await asyncio.sleep(0.05)
        assert scheduler.running
        assert scheduler.snapshot is before


@pytest.mark.asyncio
async def test_deleted_csv_keeps_timer_running(tmp_path, make_forecast):
    path = tmp_path / "forecast.csv"
    make_forecast().to_csv(path)
    scheduler = RefreshScheduler(CsvForecastProvider(path), base_interval=0.01)

    async with scheduler:
        before = scheduler.snapshot
        path.unlink()
        await asyncio.sleep(0.05)
        assert scheduler.running
        assert scheduler.snapshot is before


@pytest.mark.asyncio
async def test_failing_callback_keeps_timer_running(provider):
    def explode(snapshot):
        if provider.calls > 1:
            raise RuntimeError("display went away")

    scheduler = RefreshScheduler(provider, on_refresh=explode, base_interval=0.01)
    async with scheduler:
        await asyncio.sleep(0.05)
        assert scheduler.running
        assert provider.calls > 2
