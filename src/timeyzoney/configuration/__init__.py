"""
Configuration management for Timey Zoney.

- **app_configuration.py**: File-locked YAML loader for global settings:
  database location, audit log destinations, DST scheduler coordination
  flags, fan-out timeouts and shard count. Environment variables override
  the audit destinations. Falls back gracefully on missing or malformed files.
"""
