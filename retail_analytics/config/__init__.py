"""
Retail Sales Reporting Engine
Configuration Module
"""
from .settings import ReportSettings, Settings, get_settings

__all__ = ["ReportSettings", "Settings", "get_settings"]
