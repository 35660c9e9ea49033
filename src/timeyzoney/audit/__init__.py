"""Best-effort audit events posted to Discord log channels or a webhook."""
