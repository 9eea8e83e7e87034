"""Chat AI Analyzer: question answering and statistics over LINE chat logs."""

__version__ = "0.1.0"
