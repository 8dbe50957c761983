"""Command-line interface for estmail."""
