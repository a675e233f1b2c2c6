"""Command-line interface for SnapVCS."""
