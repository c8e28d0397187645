"""Domain types: packages and the classified error taxonomy."""
