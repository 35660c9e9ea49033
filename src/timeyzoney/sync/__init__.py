"""
Cross-shard nickname synchronisation.

- **member_gateway.py**: Per-shard access to guild members (lookup, authority
  checks, nickname edits) over a py-cord client.
- **shard_worker.py**: Applies one user's nickname to the guilds a shard hosts.
- **shard_transport.py**: Delivers an update request to every shard and
  collects the answers within a deadline.
- **fanout_updater.py**: Entry point used by the DST scheduler.
"""
