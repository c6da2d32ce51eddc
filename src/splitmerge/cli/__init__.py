"""Command-line interface for split-merge sampling runs."""
