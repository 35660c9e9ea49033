"""Event listener cogs: bot lifecycle, DST scheduler lifecycle and nickname drift."""
