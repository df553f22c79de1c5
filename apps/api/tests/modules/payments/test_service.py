"""
Unit tests for payments service layer.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from portal.modules.payments.models import PaymentStatus
from portal.modules.payments.schemas import PaymentCreate
from portal.modules.payments.service import (
    InvalidPaymentStatusError,
    PaymentAlreadyDecidedError,
    PaymentNotFoundError,
    StudentNotFoundError,
    create_payment,
    get_stats,
    list_student_payments,
    update_status,
)

SERVICE = "portal.modules.payments.service"


@pytest.fixture
def pending_payment(sample_student):
    payment = MagicMock()
    payment.id = uuid4()
    payment.student_id = sample_student.id
    payment.amount = Decimal("25000.00")
    payment.status = PaymentStatus.PENDING
    return payment


class TestCreatePayment:
    """Tests for create_payment function."""

    @pytest.mark.asyncio
    async def test_records_pending_payment(self, mock_db, sample_student, pending_payment):
        data = PaymentCreate(
            student_id=sample_student.id,
            amount=Decimal("25000.00"),
            type="tuition",
            method="mobile_money",
            reference="MM-778812",
        )

        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_users.get_student = AsyncMock(return_value=sample_student)
            mock_repo.create = AsyncMock(return_value=pending_payment)
            mock_repo.get_by_id = AsyncMock(return_value=pending_payment)

            result = await create_payment(mock_db, data)

            assert result is pending_payment
            kwargs = mock_repo.create.call_args.kwargs
            assert kwargs["student_id"] == sample_student.id
            assert kwargs["payment_type"] == "tuition"
            assert kwargs["amount"] == Decimal("25000.00")
            mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_student(self, mock_db):
        data = PaymentCreate(
            student_id=uuid4(),
            amount=Decimal("100"),
            type="tuition",
            method="cash",
            reference="R1",
        )

        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_users.get_student = AsyncMock(return_value=None)
            mock_repo.create = AsyncMock()

            with pytest.raises(StudentNotFoundError) as exc_info:
                await create_payment(mock_db, data)

            assert exc_info.value.status_code == 404
            mock_repo.create.assert_not_called()

    def test_non_positive_amount_rejected(self):
        with pytest.raises(ValueError):
            PaymentCreate(
                student_id=uuid4(),
                amount=Decimal("0"),
                type="tuition",
                method="cash",
                reference="R1",
            )


class TestListStudentPayments:
    @pytest.mark.asyncio
    async def test_unknown_student(self, mock_db):
        with patch(f"{SERVICE}.UserRepository") as mock_users:
            mock_users.get_student = AsyncMock(return_value=None)

            with pytest.raises(StudentNotFoundError):
                await list_student_payments(mock_db, uuid4())


class TestUpdateStatus:
    """Tests for update_status function."""

    @pytest.mark.asyncio
    async def test_pending_is_not_a_decision(self, mock_db):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock()

            with pytest.raises(InvalidPaymentStatusError) as exc_info:
                await update_status(mock_db, uuid4(), PaymentStatus.PENDING, uuid4())

            assert exc_info.value.status_code == 400
            mock_repo.get_by_id.assert_not_called()

    @pytest.mark.asyncio
    async def test_confirm(self, mock_db, pending_payment):
        admin_id = uuid4()
        confirmed = MagicMock()
        confirmed.status = PaymentStatus.CONFIRMED

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(side_effect=[pending_payment, confirmed])
            mock_repo.decide = AsyncMock(return_value=pending_payment.id)

            result = await update_status(
                mock_db, pending_payment.id, PaymentStatus.CONFIRMED, admin_id
            )

            assert result is confirmed
            args, kwargs = mock_repo.decide.call_args
            assert args[2] == PaymentStatus.CONFIRMED
            assert kwargs["decided_by"] == admin_id
            mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [PaymentStatus.CONFIRMED, PaymentStatus.REJECTED])
    async def test_already_decided(self, mock_db, pending_payment, status):
        pending_payment.status = status

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=pending_payment)
            mock_repo.decide = AsyncMock()

            with pytest.raises(PaymentAlreadyDecidedError) as exc_info:
                await update_status(mock_db, pending_payment.id, PaymentStatus.REJECTED, uuid4())

            assert exc_info.value.status_code == 409
            mock_repo.decide.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_decision(self, mock_db, pending_payment):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=pending_payment)
            mock_repo.decide = AsyncMock(return_value=None)

            with pytest.raises(PaymentAlreadyDecidedError):
                await update_status(
                    mock_db, pending_payment.id, PaymentStatus.CONFIRMED, uuid4()
                )

            mock_db.rollback.assert_awaited_once()
            mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_payment(self, mock_db):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(PaymentNotFoundError):
                await update_status(mock_db, uuid4(), PaymentStatus.CONFIRMED, uuid4())


class TestGetStats:
    @pytest.mark.asyncio
    async def test_totals(self, mock_db):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.totals_by_status = AsyncMock(
                return_value={
                    PaymentStatus.PENDING: (2, Decimal("300.00")),
                    PaymentStatus.CONFIRMED: (1, Decimal("200.50")),
                }
            )

            stats = await get_stats(mock_db)

            assert stats["total_count"] == 3
            assert stats["total_amount"] == pytest.approx(500.50)
            assert stats["by_status"]["rejected"] == {"count": 0, "amount": 0.0}
            assert stats["by_status"]["confirmed"] == {"count": 1, "amount": 200.5}
