"""monoctl: monorepo command lifecycle and package-manager invocation."""

__version__ = "0.4.0"
