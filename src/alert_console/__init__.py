"""
Industrial Alert Console.

Keeps a live, de-duplicated view of which sensors and digital modules are
alerting by reconciling the push alert stream with the pollable REST
snapshot (sensor catalog, thresholds and historical alert log).
"""

__version__ = "0.1.0"
