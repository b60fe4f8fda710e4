"""Command line interface for GitHub Team Metrics."""
