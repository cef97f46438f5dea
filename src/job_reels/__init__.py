"""Job Reels - turn job postings into channel-ready short videos."""

__version__ = "0.1.0"
