"""Rich rendering helpers for command output."""
