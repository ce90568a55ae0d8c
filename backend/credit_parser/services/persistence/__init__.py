"""Credit Report Parser - Persistence"""
from .repository import ReportRepository, SaveSummary

__all__ = ["ReportRepository", "SaveSummary"]
