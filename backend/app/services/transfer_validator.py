from decimal import Decimal
from typing import Tuple

from app.schemas.user import UserRead
from app.services.exceptions import TransferFailure, TransferValidationError
from app.services.ledger_store import LedgerStore, is_whole_cents


async def validate_transfer(
    store: LedgerStore,
    sender_uid: str,
    receiver_account_number: str,
    amount: Decimal,
) -> Tuple[UserRead, UserRead]:
    """Check transfer preconditions in order and return ``(sender, receiver)``.

    Raises ``TransferValidationError`` at the first failing check. Nothing is
    written either way.
    """
    if amount <= 0 or not is_whole_cents(amount):
        raise TransferValidationError(TransferFailure.InvalidAmount)

    sender = await store.find_user_by("uid", sender_uid)
    if sender is None:
        raise TransferValidationError(TransferFailure.SenderNotFound)

    if sender.balance < amount:
        raise TransferValidationError(TransferFailure.InsufficientBalance)

    receiver = await store.find_user_by("account_number", receiver_account_number)
    if receiver is None:
        raise TransferValidationError(TransferFailure.ReceiverNotFound)

    if sender.uid == receiver.uid:
        raise TransferValidationError(TransferFailure.SelfTransfer)

    return sender, receiver
