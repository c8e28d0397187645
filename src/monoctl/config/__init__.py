"""Configuration: monoctl.toml discovery, option layering, logging."""
