# modules/quiz_timer.py
"""
Одноразовые таймеры для викторин (дедлайн вопроса, перерыв, задержка старта,
удаление завершённой сессии).

Отмена таймера не гарантирует, что колбэк не выполнится: задача может
уже быть запущена. Колбэки сами проверяют актуальность по состоянию сессии.
"""

from __future__ import annotations
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

import pytz
from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimerHandle:
    """Непрозрачный идентификатор запланированного колбэка"""
    job_id: str
    name: str
    fire_at: datetime


class TimerFacility(ABC):
    """Планировщик одноразовых колбэков"""

    @abstractmethod
    def schedule(self, delay_seconds: float, callback: Callable[..., Any], *args: Any, name: str = "") -> TimerHandle:
        """Запланировать колбэк через delay_seconds секунд"""

    @abstractmethod
    def cancel(self, handle: Optional[TimerHandle]) -> bool:
        """Отменить колбэк. False, если он уже выполнен или удалён"""


class APSchedulerTimerFacility(TimerFacility):
    """Таймеры поверх AsyncIOScheduler (APScheduler 3.x)"""

    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None, misfire_grace_time: Optional[int] = None):
        # None: опоздавший колбэк всё равно выполняется, актуальность проверяет сам колбэк
        if scheduler is None:
            scheduler = AsyncIOScheduler(
                jobstores={'default': MemoryJobStore()},
                executors={'default': AsyncIOExecutor()},
                job_defaults={'misfire_grace_time': misfire_grace_time, 'coalesce': False},
                timezone=pytz.utc
            )
        self.scheduler = scheduler
        self.misfire_grace_time = misfire_grace_time
        logger.debug("APSchedulerTimerFacility initialized.")

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("⏱️ Планировщик таймеров викторин запущен")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("⏱️ Планировщик таймеров викторин остановлен")

    def schedule(self, delay_seconds: float, callback: Callable[..., Any], *args: Any, name: str = "") -> TimerHandle:
        fire_at = datetime.now(pytz.utc) + timedelta(seconds=max(0.0, float(delay_seconds)))
        job_id = f"{name or 'quiz_timer'}_{uuid.uuid4().hex}"
        self.scheduler.add_job(
            callback,
            trigger=DateTrigger(run_date=fire_at, timezone=pytz.utc),
            args=list(args),
            id=job_id,
            name=name or job_id,
            misfire_grace_time=self.misfire_grace_time,
        )
        logger.debug(f"Таймер '{job_id}' запланирован на {fire_at.isoformat()}")
        return TimerHandle(job_id=job_id, name=name, fire_at=fire_at)

    def cancel(self, handle: Optional[TimerHandle]) -> bool:
        if handle is None:
            return False
        try:
            self.scheduler.remove_job(handle.job_id)
            logger.debug(f"Таймер '{handle.job_id}' отменён")
            return True
        except JobLookupError:
            # Уже сработал или был удалён ранее
            logger.debug(f"Таймер '{handle.job_id}' не найден при отмене")
            return False
