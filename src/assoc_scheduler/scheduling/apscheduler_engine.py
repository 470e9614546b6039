"""APScheduler-based trigger engine.

Wraps APScheduler 3.x ``BackgroundScheduler`` to provide the
``TriggerEngine`` protocol.

APScheduler has no separate notion of a durable job definition with
several triggers; this adapter supplies it.  Definitions live in the
adapter, and every trigger becomes one APScheduler job whose id is the
trigger key and whose kwargs carry the definition data merged with the
trigger's own data::

    definitions                 APScheduler jobs
    ───────────                 ────────────────
    job:4  {job_id: 4, ...}  ◄── trigger:4          CronTrigger
                             ◄── retry:4:170912...  DateTrigger (one-shot)

Firings run on the scheduler's thread-pool executor.  Exceptions raised
by the bound callback are left to APScheduler, which logs them and emits
``EVENT_JOB_ERROR``.

Example::

    >>> engine = APSchedulerEngine()
    >>> engine.bind(execution_service.on_fire)
    >>> engine.start()
    >>> # … later …
    >>> engine.shutdown()
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from typing import Any

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from assoc_scheduler.errors import EngineError
from assoc_scheduler.logging import get_logger

from .cron import last_fire_time
from .protocol import (
    SCHEDULED_FIRE_TIME_KEY,
    Firing,
    FiringCallback,
    JobDefinition,
    TriggerDefinition,
)

logger = get_logger(__name__)


class APSchedulerEngine:
    """``TriggerEngine`` backed by an APScheduler ``BackgroundScheduler``.

    Args:
        scheduler: Pre-configured scheduler (job stores, executors).
            A default ``BackgroundScheduler`` is created when omitted.
        start_paused: Start without processing triggers.  Triggers are
            still stored and inspectable; used by tests and dry runs.
    """

    name: str = "apscheduler"

    def __init__(
        self,
        scheduler: BackgroundScheduler | None = None,
        *,
        start_paused: bool = False,
    ) -> None:
        self._scheduler = scheduler or BackgroundScheduler()
        self._start_paused = start_paused
        self._definitions: dict[str, JobDefinition] = {}
        self._lock = threading.RLock()
        self._callback: FiringCallback | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def bind(self, callback: FiringCallback) -> None:
        self._callback = callback

    def start(self) -> None:
        if self._scheduler.running:
            logger.warning("engine_already_running", engine=self.name)
            return
        self._scheduler.start(paused=self._start_paused)
        logger.info("engine_started", engine=self.name, paused=self._start_paused)

    def shutdown(self, wait: bool = True) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            logger.info("engine_stopped", engine=self.name)

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    # ------------------------------------------------------------------
    # TriggerEngine protocol
    # ------------------------------------------------------------------

    def add_job(self, definition: JobDefinition, replace_existing: bool = False) -> None:
        with self._lock:
            if definition.key in self._definitions and not replace_existing:
                raise EngineError(f"Job definition already exists: {definition.key}")
            self._definitions[definition.key] = definition
            # Triggers already attached pick up the new definition data
            for job in self._jobs_for(definition.key):
                self._call(
                    job.modify,
                    kwargs=self._kwargs(definition, job.kwargs["trigger_key"], job.kwargs["overrides"]),
                )

    def schedule(self, definition: JobDefinition, trigger: TriggerDefinition) -> None:
        with self._lock:
            if definition.key in self._definitions:
                raise EngineError(f"Job definition already exists: {definition.key}")
            self._definitions[definition.key] = definition
            try:
                self._add_trigger(definition, trigger)
            except EngineError:
                del self._definitions[definition.key]
                raise

    def schedule_trigger(self, trigger: TriggerDefinition) -> None:
        with self._lock:
            definition = self._definitions.get(trigger.job_key)
            if definition is None:
                raise EngineError(f"No job definition registered for {trigger.job_key}")
            self._add_trigger(definition, trigger)

    def reschedule(self, trigger_key: str, trigger: TriggerDefinition) -> None:
        with self._lock:
            definition = self._definitions.get(trigger.job_key)
            if definition is None:
                raise EngineError(f"No job definition registered for {trigger.job_key}")
            if trigger_key != trigger.key:
                self.unschedule(trigger_key)
            self._add_trigger(definition, trigger)

    def unschedule(self, trigger_key: str) -> bool:
        with self._lock:
            try:
                self._scheduler.remove_job(trigger_key)
            except JobLookupError:
                return False
            except Exception as exc:
                raise EngineError(f"Failed to unschedule {trigger_key}: {exc}", cause=exc) from exc
            return True

    def delete_job(self, job_key: str) -> bool:
        with self._lock:
            for job in self._jobs_for(job_key):
                self.unschedule(job.id)
            return self._definitions.pop(job_key, None) is not None

    def check_exists(self, key: str) -> bool:
        with self._lock:
            if key in self._definitions:
                return True
            return self._call(self._scheduler.get_job, key) is not None

    def list_trigger_keys(self, job_key: str | None = None) -> list[str]:
        with self._lock:
            if job_key is None:
                return sorted(job.id for job in self._call(self._scheduler.get_jobs))
            return sorted(job.id for job in self._jobs_for(job_key))

    def next_fire_time(self, trigger_key: str) -> datetime | None:
        """Next scheduled fire time of a trigger (None if unknown or paused)."""
        job = self._call(self._scheduler.get_job, trigger_key)
        return getattr(job, "next_run_time", None) if job is not None else None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _add_trigger(self, definition: JobDefinition, trigger: TriggerDefinition) -> None:
        options: dict[str, Any] = {}
        if trigger.fire_now_on_misfire:
            options["misfire_grace_time"] = None
        self._call(
            self._scheduler.add_job,
            self._fire,
            trigger=trigger.trigger,
            id=trigger.key,
            name=trigger.key,
            kwargs=self._kwargs(definition, trigger.key, trigger.data),
            replace_existing=True,
            coalesce=True,
            **options,
        )
        logger.debug("trigger_registered", trigger_key=trigger.key, job_key=definition.key)

    @staticmethod
    def _kwargs(definition: JobDefinition, trigger_key: str, overrides: dict[str, Any]) -> dict[str, Any]:
        return {
            "job_key": definition.key,
            "trigger_key": trigger_key,
            "data": {**definition.data, **overrides},
            "overrides": dict(overrides),
        }

    def _jobs_for(self, job_key: str) -> list[Any]:
        return [
            job
            for job in self._call(self._scheduler.get_jobs)
            if job.kwargs.get("job_key") == job_key
        ]

    def _call(self, fn: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except JobLookupError:
            raise
        except Exception as exc:
            raise EngineError(f"APScheduler call {getattr(fn, '__name__', fn)} failed: {exc}", cause=exc) from exc

    def _due_time(self, trigger_key: str, fire_time: datetime) -> datetime:
        """Slot this run was due for; the fire time when it cannot be derived.

        With ``coalesce=True`` a late run stands in for the latest missed
        slot, which is the last cron time at or before the fire time.
        """
        job = self._call(self._scheduler.get_job, trigger_key)
        trigger = getattr(job, "trigger", None)
        if isinstance(trigger, CronTrigger):
            due = last_fire_time(trigger, fire_time)
            if due is not None:
                return due.astimezone(UTC)
        return fire_time.replace(microsecond=0)

    def _fire(
        self,
        job_key: str,
        trigger_key: str,
        data: dict[str, Any],
        overrides: dict[str, Any] | None = None,
    ) -> None:
        fire_time = datetime.now(UTC)
        scheduled = data.get(SCHEDULED_FIRE_TIME_KEY)
        if scheduled:
            scheduled_fire_time = datetime.fromisoformat(scheduled)
        else:
            scheduled_fire_time = self._due_time(trigger_key, fire_time)
        if self._callback is None:
            logger.warning("firing_without_callback", trigger_key=trigger_key)
            return
        self._callback(
            Firing(
                job_key=job_key,
                trigger_key=trigger_key,
                data=dict(data),
                scheduled_fire_time=scheduled_fire_time,
                fire_time=fire_time,
            )
        )
