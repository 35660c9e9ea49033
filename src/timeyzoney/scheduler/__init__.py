"""
Scheduled work.

- **dst_scheduler.py**: Hourly, top-of-the-hour sweep that finds timezones
  which just changed offset and re-applies their users' nicknames. Supports
  idempotent start/stop, a status query and an in-flight guard against
  overlapping sweeps.
"""
