"""Domain models shared by the diagnostics engines."""
