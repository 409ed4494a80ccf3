"""
maintenance-scheduler package root.

File: src/maintenance_scheduler/__init__.py

Purpose
- Scheduling engine for industrial equipment anomalies: scores treated
  anomalies, packs them into maintenance windows, synthesizes right-sized
  windows and rebalances overloaded ones.

Import boundaries
- The package root exports metadata only. Import engine functions from
  ``maintenance_scheduler.planning`` and the async adapter from
  ``maintenance_scheduler.service``.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
