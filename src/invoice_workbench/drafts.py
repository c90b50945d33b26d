"""
Durable drafts of the invoice being edited.

A draft is the JSON snapshot of ``InvoiceFormValues`` kept in a key-value
store under a per-invoice key, so an edit survives a reload and two edit
sessions never share a slot:

- ``invoice_draft`` while creating an invoice
- ``draft-invoice-<id>`` while editing invoice ``<id>``

Saving never raises. A failed write moves the store to ``save_failed`` and
surfaces a warning; the next save attempt starts over. Anything that is
not a well-formed draft restores as "no draft".
"""

import json
import threading
from datetime import date, datetime
from enum import Enum
from typing import Callable

from invoice_workbench import config
from invoice_workbench.lib import logs, objects
from invoice_workbench.lib.storage import KeyValueStore
from invoice_workbench.lib.timers import Scheduler, ThreadingScheduler, TimerHandle
from invoice_workbench.models.invoice import (
    InvoiceFormValues,
    ServerInvoice,
    default_line_item,
)

LOG = logs.logger(__file__)

SAVE_ERROR_MESSAGE = "Unable to save. Your changes are preserved locally."


def draft_key(invoice_id: str | int | None = None) -> str:
    """Storage key for a create-mode draft, or for editing ``invoice_id``."""
    if invoice_id is None or invoice_id == "":
        return config.CREATE_DRAFT_KEY
    return f"{config.EDIT_DRAFT_KEY_PREFIX}{invoice_id}"


def is_saveable(values: InvoiceFormValues) -> bool:
    """A draft is only worth keeping once it has a customer and a line."""
    return values.customer is not None and len(values.line_items) > 0


class DraftSaveState(str, Enum):
    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    SAVE_FAILED = "save_failed"


class DraftStore:
    """
    Saves, restores and discards drafts in a key-value store.

    Attributes:
        state: Current save state.
        last_saved: Time of the last successful save.
        save_error: Warning shown while changes are not being backed up.
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = datetime.now) -> None:
        self._store = store
        self._clock = clock
        self._lock = threading.RLock()
        self.state = DraftSaveState.IDLE
        self.last_saved: datetime | None = None
        self.save_error: str | None = None

    @property
    def is_saving(self) -> bool:
        return self.state is DraftSaveState.SAVING

    def save(self, key: str, values: InvoiceFormValues) -> bool:
        """
        Persist a snapshot of values under key.

        Skipped (returns False, state untouched) unless the draft has a
        customer and at least one line item. Storage and serialization
        failures are logged and reported through ``state``/``save_error``.

        Returns:
            True if the snapshot was written.
        """
        if not is_saveable(values):
            LOG.debug("save skipped - key:%s (no customer or no lines)", key)
            return False

        with self._lock:
            self.state = DraftSaveState.SAVING
            self.save_error = None
            try:
                payload = objects.to_json(values.to_draft_dict())
                self._store.set(key, payload)
            except Exception:
                # Any failure here only disables backup
                LOG.error("Invoice autosave failed - key:%s", key, exc_info=True)
                self.state = DraftSaveState.SAVE_FAILED
                self.save_error = SAVE_ERROR_MESSAGE
                return False

            self.state = DraftSaveState.SAVED
            self.last_saved = self._clock()
        LOG.info("save - key:%s lines:%s", key, len(values.line_items))
        return True

    def restore(self, key: str) -> InvoiceFormValues | None:
        """
        Read the draft stored under key.

        Returns:
            The restored values, or None when there is no usable draft.
        """
        try:
            saved = self._store.get(key)
        except Exception:
            LOG.error("Failed to read draft - key:%s", key, exc_info=True)
            return None
        if not saved:
            return None

        try:
            return InvoiceFormValues.from_draft_dict(json.loads(saved))
        except (ValueError, TypeError, KeyError, AttributeError):
            LOG.error("Invalid draft format in storage - key:%s", key, exc_info=True)
            return None

    def discard(self, key: str) -> None:
        with self._lock:
            try:
                self._store.remove(key)
            except Exception:
                LOG.error("Failed to remove draft - key:%s", key, exc_info=True)
            self.state = DraftSaveState.IDLE
            self.last_saved = None
            self.save_error = None


class AutosaveDebouncer:
    """
    Debounced autosave: at most one save per idle window.

    Every ``notify`` restarts a single pending timer; the save fires only
    once ``delay`` seconds pass without another edit. Edits reported before
    ``mark_restored`` are ignored so a restored draft can't be overwritten
    by a blank form that is still being populated. ``cancel`` (on unmount)
    drops the pending save.

    Timers fire on scheduler threads. One lock covers the pending state and
    the write itself, so once ``cancel`` returns no save is running and
    none will start.
    """

    def __init__(
        self,
        draft_store: DraftStore,
        key: str,
        scheduler: Scheduler | None = None,
        delay: float = config.AUTOSAVE_SECONDS,
    ) -> None:
        self._draft_store = draft_store
        self._key = key
        self._scheduler = scheduler or ThreadingScheduler()
        self._delay = delay
        self._lock = threading.RLock()
        self._timer: TimerHandle | None = None
        self._generation = 0
        self._values: InvoiceFormValues | None = None
        self._restored = False
        self._closed = False

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def mark_restored(self) -> None:
        self._restored = True

    def notify(self, values: InvoiceFormValues) -> bool:
        """
        Report an edit.

        Returns:
            True if a save is now scheduled.
        """
        with self._lock:
            if self._closed or not self._restored:
                return False
            self._cancel_timer()
            if not is_saveable(values):
                self._values = None
                return False
            self._values = values
            generation = self._generation
            self._timer = self._scheduler.schedule(self._delay, lambda: self._fire(generation))
            return True

    def flush(self) -> bool:
        """Run the pending save now, if there is one."""
        with self._lock:
            if self._timer is None:
                return False
            self._cancel_timer()
            return self._save()

    def cancel(self) -> None:
        """Drop any pending save and refuse further notifications."""
        with self._lock:
            self._cancel_timer()
            self._values = None
            self._closed = True

    def _fire(self, generation: int) -> None:
        with self._lock:
            # a timer cancelled after it started running is stale
            if generation != self._generation:
                return
            self._timer = None
            self._generation += 1
            self._save()

    def _save(self) -> bool:
        values, self._values = self._values, None
        if values is None or self._closed:
            return False
        return self._draft_store.save(self._key, values)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            self._generation += 1


def initialize_form(
    draft_store: DraftStore,
    key: str,
    server_invoice: ServerInvoice | None = None,
    today: date | None = None,
) -> tuple[InvoiceFormValues, bool]:
    """
    Produce the initial form values for a create or edit session.

    Edit mode prefers a restored draft that has line items, otherwise the
    server invoice. Create mode prefers a restored draft (given one blank
    line if it has none), otherwise an empty form dated today.

    Returns:
        ``(values, restored)`` where restored tells whether a draft was used.
    """
    draft = draft_store.restore(key)

    if server_invoice is not None:
        if draft is not None and draft.line_items:
            LOG.info("initialize_form - restored edit draft key:%s", key)
            return draft, True
        return server_invoice.to_form_values(), False

    if draft is not None:
        if not draft.line_items:
            draft.line_items = [default_line_item()]
        LOG.info("initialize_form - restored create draft key:%s", key)
        return draft, True

    return (
        InvoiceFormValues(date=today or date.today(), line_items=[default_line_item()]),
        False,
    )


def has_unsaved_data(values: InvoiceFormValues, dirty: bool = False) -> bool:
    """Whether cancelling the form should ask for confirmation."""
    return (
        dirty
        or values.customer is not None
        or any(item.product is not None for item in values.line_items)
    )
