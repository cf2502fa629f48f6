"""Daily task recommendation."""

from .daily import Completion, DailyTaskConfig, DailyTaskEngine, DailyTaskResult

__all__ = ["Completion", "DailyTaskConfig", "DailyTaskEngine", "DailyTaskResult"]
