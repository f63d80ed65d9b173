"""Command line interface for tsrange."""
