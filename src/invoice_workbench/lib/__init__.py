"""
Support modules for the invoice workbench.

Modules:
    logs: Logging utilities
    objects: Canonical JSON serialization and stable hashing
    storage: Key-value stores backing the draft layer
    timers: Schedule/cancel primitive for debounced autosave
"""

from invoice_workbench.lib import logs, objects, storage, timers

__all__ = ["logs", "objects", "storage", "timers"]
