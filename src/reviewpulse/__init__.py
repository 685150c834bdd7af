"""Per-topic daily review frequency reports with week-over-week trends."""

__version__ = "0.1.0"
