"""Recurring payment scheduling."""

from intentpay.scheduler.driver import SchedulerDriver
from intentpay.scheduler.frequency import add_months, interval_for, next_due
from intentpay.scheduler.scheduler import RecurringScheduler

__all__ = [
    "RecurringScheduler",
    "SchedulerDriver",
    "add_months",
    "interval_for",
    "next_due",
]
