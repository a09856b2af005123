"""Tests for releasing receipts that no transaction refers to any more."""

import pytest

from expense_tracker.models import (
    AddAccount,
    AddTransaction,
    DeleteAccountAndTransactions,
    DeleteTransaction,
    TransactionPatch,
    UpdateTransaction,
)
from expense_tracker.receipts import (
    ReceiptJanitor,
    ReceiptStore,
    referenced_receipts,
    released_receipts,
)
from expense_tracker.state import Store, reduce


class RecordingReceiptStore(ReceiptStore):
    def __init__(self, fail=False):
        self.released = []
        self.fail = fail

    async def release(self, uri):
        if self.fail:
            raise OSError("permission denied")
        self.released.append(uri)


class TestReleasedReceipts:
    """Tests for working out which receipts were orphaned."""

    def test_deleted_transaction(self, initial_state, make_transaction):
        """Test deleting a transaction orphans its receipt."""
        before = reduce(initial_state, AddTransaction(
            transaction=make_transaction("t1", -1, receipt_uri="file://a.jpg")
        ))
        after = reduce(before, DeleteTransaction(id="t1"))
        assert referenced_receipts(before) == {"file://a.jpg"}
        assert released_receipts(before, after) == ["file://a.jpg"]

    def test_shared_receipt_kept(self, initial_state, make_transaction):
        """Test a receipt still used by another transaction is kept."""
        state = initial_state
        for transaction_id in ("t1", "t2"):
            state = reduce(state, AddTransaction(
                transaction=make_transaction(transaction_id, -1, receipt_uri="file://a.jpg")
            ))
        after = reduce(state, DeleteTransaction(id="t1"))
        assert released_receipts(state, after) == []

    def test_replaced_receipt(self, initial_state, make_transaction):
        """Test replacing a receipt orphans the old one."""
        before = reduce(initial_state, AddTransaction(
            transaction=make_transaction("t1", -1, receipt_uri="file://old.jpg")
        ))
        after = reduce(before, UpdateTransaction(
            patch=TransactionPatch(id="t1", receipt_uri="file://new.jpg")
        ))
        assert released_receipts(before, after) == ["file://old.jpg"]


class TestReceiptJanitor:
    """Tests for the store subscriber."""

    @pytest.mark.asyncio
    async def test_releases_on_account_deletion(self, store, bank_account, make_transaction):
        """Test receipts of transactions removed with their account are released."""
        receipt_store = RecordingReceiptStore()
        janitor = ReceiptJanitor(store, receipt_store)

        store.dispatch(AddAccount(account=bank_account))
        store.dispatch(AddTransaction(transaction=make_transaction(
            "t1", -1, account_id=bank_account.id, receipt_uri="file://b.jpg",
        )))
        store.dispatch(DeleteAccountAndTransactions(id=bank_account.id))
        await janitor.flush()

        assert receipt_store.released == ["file://b.jpg"]

    @pytest.mark.asyncio
    async def test_release_failure_is_absorbed(self):
        """Test a failing receipt store reports False instead of raising."""
        janitor = ReceiptJanitor(Store(), RecordingReceiptStore(fail=True))
        assert await janitor.release("file://x.jpg") is False

    @pytest.mark.asyncio
    async def test_close(self, store, make_transaction):
        """Test a closed janitor no longer releases."""
        receipt_store = RecordingReceiptStore()
        janitor = ReceiptJanitor(store, receipt_store)
        janitor.close()

        store.dispatch(AddTransaction(transaction=make_transaction("t1", -1, receipt_uri="file://a.jpg")))
        store.dispatch(DeleteTransaction(id="t1"))
        await janitor.flush()
        assert receipt_store.released == []
