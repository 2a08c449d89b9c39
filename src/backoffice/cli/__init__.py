"""Command-line interface for backoffice."""
