"""
Snapshot Layer - pull-based views of the backend.

This module provides:
    - ConsoleRestClient: async client for the sensor catalog and alert store
    - ThresholdEditor: catalog snapshot, threshold drafts, single-flight saves
    - AlertLogQuery: server-side filtering, client-side paging of the alert log

Usage:
    from alert_console.snapshot import ConsoleRestClient, ThresholdEditor

    async with ConsoleRestClient("http://localhost:5167") as client:
        editor = ThresholdEditor(client, toasts)
        await editor.load()
"""

from .models import AlertFilter, AlertRecord, Sensor, ThresholdDraft
from .client import ConsoleAPIError, ConsoleRestClient
from .thresholds import SavePolicy, ThresholdEditor, parse_threshold
from .alert_log import AlertLogQuery

__all__ = [
    # Models
    "AlertFilter",
    "AlertRecord",
    "Sensor",
    "ThresholdDraft",
    # REST Client
    "ConsoleAPIError",
    "ConsoleRestClient",
    # Editors / queries
    "AlertLogQuery",
    "SavePolicy",
    "ThresholdEditor",
    "parse_threshold",
]
