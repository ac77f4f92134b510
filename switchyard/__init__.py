"""switchyard: query routing and multi-agent research orchestration."""

__version__ = "0.1.0"
