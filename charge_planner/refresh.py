"""Decides when the forecast is regenerated and the plan recomputed.

Two triggers re-run the pipeline: a scenario change (`update` or
`set_scenario`) and a periodic timer that simulates live market movement.
Both go through `run_pipeline`, and a new snapshot is only published once a
pass has completed, so readers see either the previous plan or the next one.
"""
import asyncio

from charge_planner.config import BASE_REFRESH_INTERVAL_S
from charge_planner.logger import logger
from charge_planner.models import Scenario
from charge_planner.pipeline import run_pipeline


class RefreshScheduler:
    """Owns the refresh timer and the latest plan snapshot.

    Attributes:
        provider: forecast provider passed to every pipeline run.
        scenario: the scenario the current snapshot was computed for.
        on_refresh: optional callable invoked with each new snapshot.
        base_interval: seconds between timer refreshes at 1x simulation speed.
    """

    def __init__(self, provider, scenario=None, on_refresh=None, base_interval=BASE_REFRESH_INTERVAL_S):
        if base_interval <= 0:
            raise ValueError(f"base_interval must be positive, got {base_interval}")
        self.provider = provider
        self.scenario = (scenario or Scenario()).validate()
        self.on_refresh = on_refresh
        self.base_interval = base_interval
        self._snapshot = None
        self._task = None

    @property
    def snapshot(self):
        """Latest complete PlanSnapshot, or None before the first refresh."""
        return self._snapshot

    @property
    def interval(self):
        return self.base_interval / self.scenario.simulation_speed

    @property
    def running(self):
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Recomputation
    # ------------------------------------------------------------------

    def refresh(self):
        """Regenerate the forecast for the current scenario and publish a new plan."""
        return self._publish(run_pipeline(self.scenario, self.provider))

    def set_scenario(self, scenario):
        """Replan for `scenario` and restart the timer if it is running.

        If the scenario is invalid the error propagates and both the scenario
        and the published snapshot are left unchanged.
        """
        snapshot = run_pipeline(scenario, self.provider)
        self.scenario = scenario
        self._publish(snapshot)
        if self.running:
            self.start()
        return snapshot

    def update(self, **changes):
        """Change some scenario parameters, e.g. `update(simulation_speed=2)`."""
        return self.set_scenario(self.scenario.replace(**changes))

    def _publish(self, snapshot):
        self._snapshot = snapshot
        if self.on_refresh is not None:
            self.on_refresh(snapshot)
        return snapshot

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def start(self):
        """Start the periodic refresh, replacing any timer already running.

        Must be called from inside a running event loop.
        """
        loop = asyncio.get_running_loop()
        self.cancel()
        self._task = loop.create_task(self._run())
        logger.info(f"Refreshing every {self.interval:.2f}s")

    def cancel(self):
        """Cancel the timer without waiting for it to finish."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def stop(self):
        """Cancel the timer and wait until it has stopped."""
        task, self._task = self._task, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Refresh timer stopped")

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.refresh()
            except Exception:
                logger.exception("Scheduled refresh failed, keeping the previous plan")

    async def __aenter__(self):
        if self._snapshot is None:
            self.refresh()
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()
