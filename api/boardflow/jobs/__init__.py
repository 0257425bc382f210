from .automations import run_automation_cycle_job, sweep_pending_events_job

__all__ = [
    "run_automation_cycle_job",
    "sweep_pending_events_job",
]
"""Background job modules for RQ workers and schedulers."""
