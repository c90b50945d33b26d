import logging
from datetime import date
from decimal import Decimal

import pytest

from invoice_workbench.errors import StorageError
from invoice_workbench.lib import logs, objects
from invoice_workbench.lib.storage import DiskStore, MemoryStore
from invoice_workbench.lib.timers import ManualScheduler
from invoice_workbench.models.invoice import VatRate


def test_disk_store_survives_reopen(tmp_path):
    store = DiskStore(tmp_path / "drafts")
    store.set("invoice_draft", '{"a": 1}')
    store.close()

    reopened = DiskStore(tmp_path / "drafts")
    assert reopened.get("invoice_draft") == '{"a": 1}'
    reopened.remove("invoice_draft")
    reopened.remove("invoice_draft")
    assert reopened.get("invoice_draft") is None
    reopened.close()


def test_memory_store_quota():
    store = MemoryStore(quota=5)
    store.set("a", "123")
    store.set("a", "12345")
    with pytest.raises(StorageError):
        store.set("b", "x")


def test_manual_scheduler_fires_in_due_order():
    fired = []
    scheduler = ManualScheduler()
    scheduler.schedule(10, lambda: fired.append("late"))
    scheduler.schedule(5, lambda: fired.append("early"))
    cancelled = scheduler.schedule(1, lambda: fired.append("cancelled"))
    cancelled.cancel()

    assert scheduler.advance(10) == 2
    assert fired == ["early", "late"]
    assert scheduler.pending == []


def test_canonical_json():
    data = {"b": Decimal("1.50"), "a": date(2024, 1, 2), "rate": VatRate.REDUCED}
    assert objects.to_json(data, canonical=True) == '{"a":"2024-01-02","b":"1.50","rate":"5.5"}'
    assert objects.hash(data).hexdigest() == objects.hash(dict(reversed(list(data.items())))).hexdigest()


def test_logger_uses_module_stem():
    log = logs.logger("/somewhere/invoice_workbench/drafts.py")
    assert log.name == "invoice_workbench.drafts"
    assert logs.logger("drafts") is log
    assert isinstance(log, logging.Logger)
