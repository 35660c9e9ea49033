"""py-cord cogs wiring the sync core to Discord events."""
