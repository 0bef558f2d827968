"""
Scheduled jobs for the deal follow-up assistant.

- notify_cron: notify stakeholders about stale deals
- cold_deal_cron: alert the sales channel about cold deals
"""

from .cold_deal_cron import run_cold_deal_job
from .notify_cron import run_notify_job

__all__ = ["run_cold_deal_job", "run_notify_job"]
