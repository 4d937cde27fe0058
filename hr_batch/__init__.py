"""
hr_batch -- Batch processing for scheduled HR jobs.

Provides a batch execution engine with per-item SAVEPOINT isolation and
durable job/item records, plus the HR jobs that run on it:

- ``approvals.auto_approve``: 48-hour auto-approval sweep
- ``attendance.overtime_alerts``: monthly overtime threshold scan
- ``notifications.dispatch_outbox``: notification outbox delivery

Architecture:
    hr_batch/ is a top-level package.  Nothing in hr_kernel, hr_engines,
    hr_services or hr_modules imports from hr_batch.
"""
