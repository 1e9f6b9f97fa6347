"""Core bridge subsystem: execution models, wallet interfaces, recovery and order lifecycle."""
