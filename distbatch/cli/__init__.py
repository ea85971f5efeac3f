"""Command-line interface for distbatch."""
