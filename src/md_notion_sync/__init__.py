"""Sync markdown documents from a repository to Notion pages."""

__version__ = "0.3.0"
