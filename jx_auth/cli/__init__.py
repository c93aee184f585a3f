"""Command-line interface for jx-auth."""
