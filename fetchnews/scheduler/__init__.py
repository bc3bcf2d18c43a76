"""
Scheduler Package

APScheduler-based background task scheduling.
"""

from fetchnews.scheduler.background_scheduler import BackgroundScheduler, background_scheduler

__all__ = ["BackgroundScheduler", "background_scheduler"]
