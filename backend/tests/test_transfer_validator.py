"""
Tests for transfer precondition checks.
"""
from decimal import Decimal

import pytest

from app.services.exceptions import TransferFailure, TransferValidationError
from app.services.transfer_validator import validate_transfer

from conftest import make_user


async def _failure_of(store, sender_uid, account_number, amount) -> TransferFailure:
    with pytest.raises(TransferValidationError) as exc_info:
        await validate_transfer(store, sender_uid, account_number, Decimal(amount))
    return exc_info.value.failure


class TestTransferValidator:
    """Test cases for the ordered validation chain."""

    async def test_valid_transfer_returns_both_parties(self, store, alice, bob):
        sender, receiver = await validate_transfer(store, "alice", bob.account_number, Decimal("10.00"))
        assert sender.uid == "alice"
        assert receiver.uid == "bob"

    async def test_receiver_account_is_case_insensitive(self, store, alice, bob):
        _, receiver = await validate_transfer(store, "alice", bob.account_number.lower(), Decimal("10.00"))
        assert receiver.uid == "bob"

    @pytest.mark.parametrize("amount", ["0", "-5.00", "0.004", "10.001"])
    async def test_non_positive_amount(self, store, alice, bob, amount):
        assert await _failure_of(store, "alice", bob.account_number, amount) == TransferFailure.InvalidAmount

    async def test_amount_checked_before_sender(self, store, bob):
        assert await _failure_of(store, "ghost", bob.account_number, "0") == TransferFailure.InvalidAmount

    async def test_unknown_sender(self, store, bob):
        assert await _failure_of(store, "ghost", bob.account_number, "10") == TransferFailure.SenderNotFound

    async def test_insufficient_balance(self, store, bob):
        await make_user(store, "poor", balance=Decimal("100.00"))
        assert await _failure_of(store, "poor", bob.account_number, "150") == TransferFailure.InsufficientBalance

    async def test_balance_checked_before_receiver(self, store, alice):
        assert await _failure_of(store, "alice", "ZZZZZZ", "5000") == TransferFailure.InsufficientBalance

    async def test_exact_balance_is_allowed(self, store, bob):
        await make_user(store, "exact", balance=Decimal("25.00"))
        sender, _ = await validate_transfer(store, "exact", bob.account_number, Decimal("25.00"))
        assert sender.uid == "exact"

    async def test_unknown_receiver(self, store, alice):
        assert await _failure_of(store, "alice", "ZZZZZZ", "10") == TransferFailure.ReceiverNotFound

    async def test_self_transfer(self, store, alice):
        assert await _failure_of(store, "alice", alice.account_number, "10") == TransferFailure.SelfTransfer

    async def test_error_carries_readable_message(self, store, alice):
        with pytest.raises(TransferValidationError) as exc_info:
            await validate_transfer(store, "alice", alice.account_number, Decimal("1"))
        assert exc_info.value.code == "SelfTransfer"
        assert exc_info.value.message == "You cannot send money to yourself."

    async def test_trailing_zeros_are_whole_cents(self, store, alice, bob):
        sender, _ = await validate_transfer(store, "alice", bob.account_number, Decimal("5.000"))
        assert sender.uid == "alice"
