import json
import threading
from datetime import date, datetime
from decimal import Decimal

from invoice_workbench.drafts import (
    SAVE_ERROR_MESSAGE,
    AutosaveDebouncer,
    DraftSaveState,
    DraftStore,
    draft_key,
    has_unsaved_data,
    initialize_form,
)
from invoice_workbench.lib.storage import MemoryStore
from invoice_workbench.models.invoice import InvoiceFormValues, default_line_item


def test_draft_keys():
    assert draft_key() == "invoice_draft"
    assert draft_key("42") == "draft-invoice-42"
    assert draft_key(42) == "draft-invoice-42"


def test_save_and_restore(draft_store, memory_store, form_values):
    assert draft_store.save("invoice_draft", form_values)
    assert draft_store.state is DraftSaveState.SAVED
    assert draft_store.last_saved is not None

    stored = json.loads(memory_store.data["invoice_draft"])
    assert set(stored) == {"customer", "date", "deadline", "paid", "finalized", "lineItems"}
    assert stored["date"] == "2024-05-01"

    restored = draft_store.restore("invoice_draft")
    assert restored.customer.id == form_values.customer.id
    assert (restored.date, restored.deadline) == (form_values.date, form_values.deadline)
    assert restored.line_items == form_values.line_items


def test_save_is_skipped_without_customer(draft_store, memory_store):
    values = InvoiceFormValues(line_items=[default_line_item()])
    assert not draft_store.save("invoice_draft", values)
    assert draft_store.state is DraftSaveState.IDLE
    assert memory_store.data == {}


def test_save_failure_keeps_working_and_recovers(form_values):
    store = MemoryStore(quota=10)
    drafts = DraftStore(store, clock=lambda: datetime(2024, 5, 1, 12, 0))

    assert not drafts.save("invoice_draft", form_values)
    assert drafts.state is DraftSaveState.SAVE_FAILED
    assert drafts.save_error == SAVE_ERROR_MESSAGE

    store.quota = None
    assert drafts.save("invoice_draft", form_values)
    assert drafts.state is DraftSaveState.SAVED
    assert drafts.save_error is None
    assert drafts.last_saved == datetime(2024, 5, 1, 12, 0)


def test_restore_rejects_malformed_drafts(draft_store, memory_store):
    assert draft_store.restore("missing") is None

    memory_store.data["bad-json"] = "{not json"
    assert draft_store.restore("bad-json") is None

    memory_store.data["wrong-shape"] = json.dumps({"customer": "Ada", "lineItems": []})
    assert draft_store.restore("wrong-shape") is None

    memory_store.data["bad-line"] = json.dumps(
        {
            "customer": None,
            "date": None,
            "deadline": None,
            "paid": False,
            "finalized": False,
            "lineItems": [{"vat_rate": "19.6"}],
        }
    )
    assert draft_store.restore("bad-line") is None


def test_discard_resets_state(draft_store, memory_store, form_values):
    draft_store.save("invoice_draft", form_values)
    draft_store.discard("invoice_draft")

    assert "invoice_draft" not in memory_store.data
    assert draft_store.state is DraftSaveState.IDLE
    assert draft_store.last_saved is None


def test_debouncer_saves_once_per_idle_window(draft_store, memory_store, scheduler, form_values):
    autosave = AutosaveDebouncer(draft_store, "invoice_draft", scheduler, delay=30)
    autosave.mark_restored()

    assert autosave.notify(form_values)
    scheduler.advance(20)
    form_values.line_items[0].quantity = Decimal("3")
    autosave.notify(form_values)
    scheduler.advance(20)
    assert memory_store.data == {}

    assert scheduler.advance(10) == 1
    assert json.loads(memory_store.data["invoice_draft"])["lineItems"][0]["quantity"] == "3"
    assert not autosave.pending


def test_debouncer_ignores_edits_before_restore(draft_store, memory_store, scheduler, form_values):
    autosave = AutosaveDebouncer(draft_store, "invoice_draft", scheduler)

    assert not autosave.notify(form_values)
    scheduler.advance(60)
    assert memory_store.data == {}


def test_debouncer_cancel_drops_pending_save(draft_store, memory_store, scheduler, form_values):
    autosave = AutosaveDebouncer(draft_store, "invoice_draft", scheduler)
    autosave.mark_restored()
    autosave.notify(form_values)

    autosave.cancel()
    scheduler.advance(60)

    assert memory_store.data == {}
    assert not autosave.notify(form_values)


def test_debouncer_flush(draft_store, memory_store, scheduler, form_values):
    autosave = AutosaveDebouncer(draft_store, "invoice_draft", scheduler)
    autosave.mark_restored()
    autosave.notify(form_values)

    assert autosave.flush()
    assert "invoice_draft" in memory_store.data
    assert scheduler.advance(60) == 0


def test_superseded_timer_does_not_save_early(draft_store, memory_store, scheduler, form_values):
    autosave = AutosaveDebouncer(draft_store, "invoice_draft", scheduler, delay=30)
    autosave.mark_restored()
    autosave.notify(form_values)
    superseded = scheduler.timers[0]
    autosave.notify(form_values)

    # a timer thread that was already running when the edit came in
    superseded.callback()

    assert memory_store.data == {}
    assert autosave.pending
    assert scheduler.advance(30) == 1
    assert "invoice_draft" in memory_store.data


class _SlowStore(MemoryStore):
    """Blocks inside ``set`` until released."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def set(self, key, value):
        self.entered.set()
        self.release.wait(5)
        super().set(key, value)


def test_discard_during_running_save_leaves_no_draft(scheduler, form_values):
    store = _SlowStore()
    drafts = DraftStore(store)
    autosave = AutosaveDebouncer(drafts, "invoice_draft", scheduler)
    autosave.mark_restored()
    autosave.notify(form_values)

    saver = threading.Thread(target=autosave.flush)
    saver.start()
    assert store.entered.wait(5)

    def _discard():
        autosave.cancel()
        drafts.discard("invoice_draft")

    discarder = threading.Thread(target=_discard)
    discarder.start()
    discarder.join(0.2)
    assert discarder.is_alive()

    store.release.set()
    saver.join(5)
    discarder.join(5)

    assert store.data == {}
    assert drafts.state is DraftSaveState.IDLE
    assert not autosave.notify(form_values)


def test_initialize_create_mode_defaults(draft_store):
    values, restored = initialize_form(draft_store, "invoice_draft", today=date(2024, 6, 1))

    assert not restored
    assert values.date == date(2024, 6, 1)
    assert len(values.line_items) == 1


def test_initialize_create_mode_restores_draft(draft_store, form_values):
    draft_store.save("invoice_draft", form_values)

    values, restored = initialize_form(draft_store, "invoice_draft")
    assert restored
    assert values.customer == form_values.customer


def test_initialize_edit_mode_prefers_draft_with_lines(draft_store, server_invoice, form_values):
    key = draft_key(server_invoice.id)

    values, restored = initialize_form(draft_store, key, server_invoice)
    assert not restored
    assert [item.origin_line_id for item in values.line_items] == ["A", "B"]

    draft_store.save(key, form_values)
    values, restored = initialize_form(draft_store, key, server_invoice)
    assert restored
    assert len(values.line_items) == 1


def test_has_unsaved_data(customer):
    assert not has_unsaved_data(InvoiceFormValues(line_items=[default_line_item()]))
    assert has_unsaved_data(InvoiceFormValues(customer=customer))
    assert has_unsaved_data(InvoiceFormValues(), dirty=True)
