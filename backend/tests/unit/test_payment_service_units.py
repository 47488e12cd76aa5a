"""
Unit tests for payment_service.

DB-free: the event lookup, participation checks and the event ledger are
patched; the session is a MagicMock.
"""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from backend.app.errors import AppError, ErrorCode, WarningCode
from backend.app.services import payment_service

_SVC = "backend.app.services.payment_service"


@pytest.fixture
def event_with_ledger():
    """
    Event 1 where every user takes part and user 2 owes user 1 50.00.
    Yields the patched is_participant mock.
    """
    with patch(f"{_SVC}.get_event_or_404"), \
            patch(f"{_SVC}.require_participant"), \
            patch(f"{_SVC}.is_participant", return_value=True) as is_participant, \
            patch(f"{_SVC}.compute_event_ledger", return_value={2: {1: Decimal("50.00")}}):
        yield is_participant


def test_payment_within_debt_has_no_warning(event_with_ledger):
    session = MagicMock()
    payment, warnings = payment_service.create_payment(
        event_id=1,
        caller_id=2,
        data={"to_user_id": 1, "amount": Decimal("50.00"), "from_user_id": None},
        session=session,
    )

    assert warnings == []
    assert payment.from_user_id == 2
    assert payment.to_user_id == 1
    assert payment.created_by_user_id == 2
    session.add.assert_called_once_with(payment)


def test_overpayment_is_recorded_with_warning(event_with_ledger):
    session = MagicMock()
    payment, warnings = payment_service.create_payment(
        event_id=1,
        caller_id=2,
        data={"to_user_id": 1, "amount": Decimal("70.00")},
        session=session,
    )

    assert len(warnings) == 1
    assert warnings[0]["code"] == WarningCode.OVERPAYMENT
    assert "50.00" in warnings[0]["message"]
    session.add.assert_called_once_with(payment)


def test_paying_someone_who_owes_you_is_an_overpayment(event_with_ledger):
    _, warnings = payment_service.create_payment(
        event_id=1,
        caller_id=1,
        data={"to_user_id": 2, "amount": Decimal("5.00")},
        session=MagicMock(),
    )
    assert [w["code"] for w in warnings] == [WarningCode.OVERPAYMENT]


def test_caller_may_record_a_payment_between_others(event_with_ledger):
    payment, _ = payment_service.create_payment(
        event_id=1,
        caller_id=3,
        data={"from_user_id": 2, "to_user_id": 1, "amount": Decimal("10.00")},
        session=MagicMock(),
    )
    assert payment.from_user_id == 2
    assert payment.created_by_user_id == 3


def test_self_payment_is_rejected(event_with_ledger):
    with pytest.raises(AppError) as exc_info:
        payment_service.create_payment(
            event_id=1,
            caller_id=1,
            data={"to_user_id": 1, "amount": Decimal("10.00")},
            session=MagicMock(),
        )
    assert exc_info.value.code == ErrorCode.SELF_PAYMENT
    assert exc_info.value.http_status == 422


def test_recipient_must_take_part(event_with_ledger):
    event_with_ledger.side_effect = lambda event_id, user_id, session: user_id != 9

    with pytest.raises(AppError) as exc_info:
        payment_service.create_payment(
            event_id=1,
            caller_id=1,
            data={"to_user_id": 9, "amount": Decimal("10.00")},
            session=MagicMock(),
        )
    assert exc_info.value.code == ErrorCode.PAYMENT_USER_NOT_PARTICIPANT
    assert exc_info.value.field == "to_user_id"


def test_outstanding_debt_is_never_negative():
    with patch(f"{_SVC}.compute_event_ledger", return_value={2: {1: Decimal("-20.00")}}):
        assert payment_service.outstanding_debt(1, 2, 1, MagicMock()) == Decimal("0.00")


@pytest.mark.parametrize("stored", [None, SimpleNamespace(is_deleted=True, event_id=1)])
def test_delete_missing_or_deleted_payment(stored):
    session = MagicMock()
    session.get.return_value = stored

    with pytest.raises(AppError) as exc_info:
        payment_service.delete_payment(7, caller_id=1, session=session)

    assert exc_info.value.code == ErrorCode.PAYMENT_NOT_FOUND
    assert exc_info.value.http_status == 404


def test_delete_payment_sets_deleted_at():
    stored = SimpleNamespace(is_deleted=False, event_id=1, deleted_at=None)
    session = MagicMock()
    session.get.return_value = stored

    with patch(f"{_SVC}.require_participant"):
        payment_service.delete_payment(7, caller_id=1, session=session)

    assert stored.deleted_at is not None
