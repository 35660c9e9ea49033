"""
Timezone arithmetic and nickname text rules.

- **offset_calculator.py**: Zone validation and ``UTC±N`` offset labels.
- **nickname_formatter.py**: Adds, replaces and strips the ``(UTC±N)`` suffix
  within Discord's 32 character nickname limit.
- **transition_detector.py**: Decides, at 5 AM local time, whether a zone's
  offset changed since the same time yesterday.
"""
