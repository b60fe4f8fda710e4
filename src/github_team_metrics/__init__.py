"""GitHub Team Metrics - activity ingestion and team rollups."""

__version__ = "0.1.0"
