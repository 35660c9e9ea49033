"""
Timey Zoney - timezone-annotated nicknames for Discord

Timey Zoney keeps every member's nickname suffixed with their current UTC
offset, e.g. ``Alice (UTC-5)``, across every server they share with the bot,
and re-applies the suffix when daylight saving time moves a timezone's offset.

Core Components:

- **Timezone helpers**: Offset labels, nickname formatting/truncation and
  daylight saving transition detection
- **DST Scheduler**: Hourly, top-of-the-hour sweep over every timezone in use
- **Fan-out Updater**: Pushes a user's new nickname to every guild on every
  shard, honouring owner and role-hierarchy limits
- **Drift correction**: Re-applies the suffix when a member edits it away

Usage:
    from timeyzoney.main import main
    main()  # Starts the bot
"""
