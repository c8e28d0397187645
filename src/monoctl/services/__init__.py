"""Services: the command lifecycle and its stages."""
