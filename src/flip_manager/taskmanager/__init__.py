"""Task manager — background cron jobs for the flip engine.

Provides ``TaskManager`` for periodic background tasks:
- Flip reconciliation (poll pending submit/delete transactions)
- Epoch watch (archive flips once validation has completed)
"""

from __future__ import annotations

from flip_manager.taskmanager.manager import CronJob, TaskManager

__all__ = ["CronJob", "TaskManager"]
