"""Tests for the debt engine: institutional amortization and personal debts."""

from datetime import date
from decimal import Decimal

import pytest

from pocketledger.cli.main import cli
from pocketledger.domain.category import DEBT_PAYMENT_CATEGORY
from pocketledger.domain.entities import DebtRole, DebtStatus, TransactionType
from pocketledger.domain.errors import InvalidOperationError, NotFoundError, ValidationError

OWNER = "alice"
D = Decimal


@pytest.fixture
def car_loan(debt_service, checking):
    """Monthly loan of 1200 paid 100 per month from 2024-01-15."""
    return debt_service.create_debt(
        OWNER,
        "Car loan",
        "1200",
        role="institutional",
        account_id=checking.id,
        installment_amount="100",
        frequency="monthly",
        start_date=date(2024, 1, 15),
    )


def _lent(debt_service, principal, name="Dinner", **kwargs):
    return debt_service.create_debt(
        OWNER, name, principal, role="lent", counterparty_name="Bob", **kwargs
    )


class TestCreateDebt:
    """Tests for creating debts."""

    def test_institutional_defaults(self, car_loan):
        assert car_loan.role is DebtRole.INSTITUTIONAL
        assert car_loan.current_balance == D("1200.00")
        assert car_loan.next_due_date == date(2024, 1, 15)
        assert car_loan.status is DebtStatus.OPEN

    def test_institutional_requires_schedule(self, debt_service):
        with pytest.raises(ValidationError, match="installment_amount, frequency and start_date"):
            debt_service.create_debt(OWNER, "Loan", "1000", installment_amount="100")

    def test_institutional_rejects_unknown_frequency(self, debt_service):
        with pytest.raises(ValidationError, match="Unknown frequency"):
            debt_service.create_debt(
                OWNER, "Loan", "1000", installment_amount="100", frequency="daily", start_date=date(2024, 1, 1)
            )

    def test_lent_with_account_creates_expense(self, debt_service, transaction_service, account_service, wallet):
        debt = _lent(debt_service, "40", account_id=wallet.id)

        txns = transaction_service.list_transactions(OWNER)
        assert debt.status is DebtStatus.OPEN
        assert debt.current_balance == D("40.00")
        assert len(txns) == 1
        assert txns[0].type is TransactionType.EXPENSE
        assert txns[0].description == "Lent to Bob"
        assert account_service.require_account(OWNER, wallet.id).balance == D("60.00")

    def test_borrowed_with_account_creates_income(self, debt_service, transaction_service, wallet):
        debt_service.create_debt(
            OWNER, "Rent help", "200", role="borrowed", counterparty_name="Carol", account_id=wallet.id
        )

        txn = transaction_service.list_transactions(OWNER)[0]
        assert txn.type is TransactionType.INCOME
        assert txn.description == "Borrowed from Carol"

    def test_borrowed_uses_category_type(self, debt_service, transaction_service, wallet, groceries):
        debt_service.create_debt(
            OWNER, "Groceries", "20", role="borrowed", account_id=wallet.id, category_id=groceries.id
        )

        assert transaction_service.list_transactions(OWNER)[0].type is TransactionType.EXPENSE

    def test_transaction_opt_out_and_opt_in(self, debt_service, transaction_service, wallet):
        _lent(debt_service, "40", account_id=wallet.id, create_transaction=False)
        assert transaction_service.list_transactions(OWNER) == []

        _lent(debt_service, "15", name="Taxi", create_transaction=True)
        txn = transaction_service.list_transactions(OWNER)[0]
        assert txn.account_id is None

    def test_past_due_date_is_overdue(self, debt_service):
        debt = _lent(debt_service, "40", due_date=date(2024, 4, 1))
        assert debt.status is DebtStatus.OVERDUE

    def test_unknown_account(self, debt_service):
        with pytest.raises(NotFoundError):
            _lent(debt_service, "40", account_id=999)
        assert debt_service.get_debts(OWNER) == []

    def test_invalid_role_and_principal(self, debt_service):
        with pytest.raises(ValidationError):
            debt_service.create_debt(OWNER, "X", "10", role="gifted")
        with pytest.raises(ValidationError):
            _lent(debt_service, "0")


class TestCatchUp:
    """Tests for institutional catch-up."""

    def test_applies_missed_installments(
        self, debt_service, transaction_service, category_service, account_service, car_loan, checking
    ):
        # Today is 2024-04-15: Jan, Feb and Mar installments are due, Apr is not yet
        debt = debt_service.catch_up_debt(OWNER, car_loan.id)

        updates = debt_service.get_debt_updates(OWNER, car_loan.id)
        assert [u.update_date for u in updates] == [date(2024, 1, 15), date(2024, 2, 15), date(2024, 3, 15)]
        assert debt.current_balance == D("900.00")
        assert debt.next_due_date == date(2024, 4, 15)
        assert account_service.require_account(OWNER, checking.id).balance == D("700.00")

        txns = transaction_service.list_transactions(OWNER)
        assert len(txns) == 3
        assert {t.description for t in txns} == {"Car loan Payment"}
        assert {t.transaction_date for t in txns} == {u.update_date for u in updates}
        assert {t.id for t in txns} == {u.transaction_id for u in updates}
        category = category_service.require_category(OWNER, txns[0].category_id)
        assert category.name == DEBT_PAYMENT_CATEGORY

    def test_catch_up_is_idempotent(self, debt_service, transaction_service, car_loan):
        debt_service.catch_up_debt(OWNER, car_loan.id)
        debt = debt_service.catch_up_debt(OWNER, car_loan.id)

        assert debt.current_balance == D("900.00")
        assert len(debt_service.get_debt_updates(OWNER, car_loan.id)) == 3
        assert len(transaction_service.list_transactions(OWNER)) == 3

    def test_catch_up_after_time_passes(self, debt_service, clock, car_loan):
        debt_service.catch_up_debt(OWNER, car_loan.id)
        clock.set(date(2024, 5, 20))

        debt = debt_service.catch_up_debt(OWNER, car_loan.id)

        assert debt.current_balance == D("700.00")
        assert debt.next_due_date == date(2024, 6, 15)

    def test_nothing_due_yet(self, debt_service, clock, car_loan):
        clock.set(date(2024, 1, 15))

        debt = debt_service.catch_up_debt(OWNER, car_loan.id)

        assert debt.current_balance == D("1200.00")
        assert debt_service.get_debt_updates(OWNER, car_loan.id) == []

    def test_stops_at_term(self, debt_service):
        debt = debt_service.create_debt(
            OWNER, "Phone", "600", installment_amount="50", frequency="monthly",
            start_date=date(2024, 1, 1), term=2,
        )

        debt = debt_service.catch_up_debt(OWNER, debt.id)

        assert len(debt_service.get_debt_updates(OWNER, debt.id)) == 2
        assert debt.current_balance == D("500.00")

    def test_stops_when_paid_off(self, debt_service):
        debt = debt_service.create_debt(
            OWNER, "Laptop", "250", installment_amount="100", frequency="monthly",
            start_date=date(2023, 1, 15),
        )

        debt = debt_service.catch_up_debt(OWNER, debt.id)

        assert len(debt_service.get_debt_updates(OWNER, debt.id)) == 3
        assert debt.status is DebtStatus.SETTLED

    def test_weekly_schedule(self, debt_service):
        debt = debt_service.create_debt(
            OWNER, "Furniture", "1000", installment_amount="10", frequency="weekly",
            start_date=date(2024, 3, 25),
        )

        debt = debt_service.catch_up_debt(OWNER, debt.id)

        # 25 Mar, 1 Apr, 8 Apr; 15 Apr is today
        assert debt.current_balance == D("970.00")
        assert debt.next_due_date == date(2024, 4, 15)

    def test_personal_debt_rejected(self, debt_service):
        debt = _lent(debt_service, "40")
        with pytest.raises(InvalidOperationError):
            debt_service.catch_up_debt(OWNER, debt.id)

    def test_catch_up_all(self, debt_service, car_loan):
        debt_service.create_debt(
            OWNER, "Phone", "600", installment_amount="50", frequency="biweekly", start_date=date(2024, 3, 1)
        )
        _lent(debt_service, "40")

        debts = debt_service.catch_up_all_debts(OWNER)

        assert [d.name for d in debts] == ["Car loan", "Phone"]
        assert debts[0].current_balance == D("900.00")
        # 1 Mar, 15 Mar, 29 Mar, 12 Apr
        assert debts[1].current_balance == D("400.00")

    def test_other_owner_cannot_catch_up(self, debt_service, car_loan):
        with pytest.raises(NotFoundError):
            debt_service.catch_up_debt("bob", car_loan.id)


class TestPayEarly:
    """Tests for paying an installment before it is due."""

    def test_pay_early_then_catch_up(self, debt_service, transaction_service, clock):
        debt = debt_service.create_debt(
            OWNER, "Loan", "1200", installment_amount="100", frequency="monthly", start_date=date(2024, 4, 20)
        )

        debt = debt_service.pay_early(OWNER, debt.id)

        assert debt.current_balance == D("1100.00")
        assert debt.next_due_date == date(2024, 5, 20)
        assert [u.update_date for u in debt_service.get_debt_updates(OWNER, debt.id)] == [date(2024, 4, 20)]
        assert transaction_service.list_transactions(OWNER)[0].transaction_date == date(2024, 4, 15)

        # The prepaid installment is not applied again
        clock.set(date(2024, 5, 1))
        assert debt_service.catch_up_debt(OWNER, debt.id).current_balance == D("1100.00")

        clock.set(date(2024, 5, 21))
        assert debt_service.catch_up_debt(OWNER, debt.id).current_balance == D("1000.00")

    def test_pay_early_on_due_date_rejected(self, debt_service, clock, car_loan):
        debt_service.catch_up_debt(OWNER, car_loan.id)  # next due is today

        with pytest.raises(InvalidOperationError, match="run catch-up"):
            debt_service.pay_early(OWNER, car_loan.id)

    def test_pay_early_when_overdue_rejected(self, debt_service, car_loan):
        with pytest.raises(InvalidOperationError):
            debt_service.pay_early(OWNER, car_loan.id)
        assert debt_service.get_debt_updates(OWNER, car_loan.id) == []

    def test_pay_early_personal_rejected(self, debt_service):
        debt = _lent(debt_service, "40")
        with pytest.raises(InvalidOperationError):
            debt_service.pay_early(OWNER, debt.id)


class TestRepayments:
    """Tests for personal debt repayments."""

    def test_add_repayment_with_account(self, debt_service, transaction_service, account_service, wallet):
        debt = _lent(debt_service, "100", due_date=date(2024, 5, 1))

        repayment = debt_service.add_repayment(OWNER, debt.id, "30", account_id=wallet.id)

        view = debt_service.get_debt(OWNER, debt.id)
        assert repayment.date == date(2024, 4, 15)
        assert view.debt.paid_amount == D("30.00")
        assert view.debt.current_balance == D("70.00")
        assert view.remaining == D("70.00")
        assert view.progress == D("30.00")
        assert view.debt.status is DebtStatus.OPEN

        txn = transaction_service.require_transaction(OWNER, repayment.transaction_id)
        assert txn.type is TransactionType.INCOME
        assert txn.description == "Repayment from Bob"
        assert account_service.require_account(OWNER, wallet.id).balance == D("130.00")

    def test_borrowed_repayment_is_expense(self, debt_service, transaction_service, wallet):
        debt = debt_service.create_debt(OWNER, "Loan from Carol", "50", role="borrowed")

        repayment = debt_service.add_repayment(OWNER, debt.id, "20", account_id=wallet.id)

        txn = transaction_service.require_transaction(OWNER, repayment.transaction_id)
        assert txn.type is TransactionType.EXPENSE

    def test_full_repayment_settles(self, debt_service):
        debt = _lent(debt_service, "100", due_date=date(2024, 4, 1))
        assert debt.status is DebtStatus.OVERDUE

        debt_service.add_repayment(OWNER, debt.id, "100")

        assert debt_service.get_debt(OWNER, debt.id).debt.status is DebtStatus.SETTLED

    def test_overpayment_clamps_current_balance(self, debt_service):
        debt = _lent(debt_service, "100")

        debt_service.add_repayment(OWNER, debt.id, "120")

        debt = debt_service.require_debt(OWNER, debt.id)
        assert debt.current_balance == D("0.00")
        assert debt.status is DebtStatus.SETTLED

    def test_adjustments(self, debt_service):
        debt = _lent(debt_service, "100")

        debt_service.add_repayment(OWNER, debt.id, "0", adjustment_amount="15")
        debt_service.add_repayment(OWNER, debt.id, "50", adjustment_amount="-5")

        debt = debt_service.require_debt(OWNER, debt.id)
        assert debt.adjustment_total == D("10.00")
        assert debt.current_balance == D("60.00")

    def test_delete_repayment_is_exact_inverse(self, debt_service, transaction_service, account_service, wallet):
        debt = _lent(debt_service, "100", due_date=date(2024, 5, 1))
        before = debt_service.require_debt(OWNER, debt.id)

        repayment = debt_service.add_repayment(
            OWNER, debt.id, "35.55", adjustment_amount="4.45", account_id=wallet.id
        )
        debt_service.delete_repayment(OWNER, debt.id, repayment.id)

        assert debt_service.require_debt(OWNER, debt.id) == before
        assert debt_service.get_repayments(OWNER, debt.id) == []
        assert transaction_service.get_transaction(OWNER, repayment.transaction_id) is None
        assert account_service.require_account(OWNER, wallet.id).balance == D("100.00")

    def test_delete_settling_repayment_reopens(self, debt_service):
        debt = _lent(debt_service, "100", due_date=date(2024, 4, 1))
        repayment = debt_service.add_repayment(OWNER, debt.id, "100")

        debt = debt_service.delete_repayment(OWNER, debt.id, repayment.id)

        assert debt.status is DebtStatus.OVERDUE
        assert debt.current_balance == D("100.00")

    def test_delete_unknown_repayment(self, debt_service):
        debt = _lent(debt_service, "100")
        with pytest.raises(NotFoundError, match="Repayment 7 not found"):
            debt_service.delete_repayment(OWNER, debt.id, 7)

    def test_institutional_repayment_rejected(self, debt_service, car_loan):
        with pytest.raises(InvalidOperationError):
            debt_service.add_repayment(OWNER, car_loan.id, "100")

    def test_repayment_validation(self, debt_service):
        debt = _lent(debt_service, "100")
        with pytest.raises(ValidationError):
            debt_service.add_repayment(OWNER, debt.id, "0")
        with pytest.raises(ValidationError):
            debt_service.add_repayment(OWNER, debt.id, "-10")

    def test_repayments_newest_first(self, debt_service):
        debt = _lent(debt_service, "100")
        debt_service.add_repayment(OWNER, debt.id, "10", repayment_date=date(2024, 3, 1))
        debt_service.add_repayment(OWNER, debt.id, "20", repayment_date=date(2024, 4, 1))

        assert [r.amount for r in debt_service.get_repayments(OWNER, debt.id)] == [D("20.00"), D("10.00")]


class TestBatchRepayment:
    """Tests for proportional batch repayments."""

    def test_proportional_split_with_one_transaction(self, debt_service, transaction_service, wallet):
        first = _lent(debt_service, "60", name="Dinner")
        second = _lent(debt_service, "40", name="Taxi")

        result = debt_service.batch_repayment(OWNER, [first.id, second.id], "50", account_id=wallet.id)

        assert [(o.debt_id, o.outcome, o.amount) for o in result.outcomes] == [
            (first.id, "updated", D("30.00")),
            (second.id, "updated", D("20.00")),
        ]
        assert debt_service.require_debt(OWNER, first.id).current_balance == D("30.00")
        assert debt_service.require_debt(OWNER, second.id).current_balance == D("20.00")

        txns = transaction_service.list_transactions(OWNER)
        assert len(txns) == 1
        assert txns[0].amount == D("50.00")
        assert txns[0].type is TransactionType.INCOME
        assert result.transaction.id == txns[0].id

        first_repayment = debt_service.get_repayments(OWNER, first.id)[0]
        second_repayment = debt_service.get_repayments(OWNER, second.id)[0]
        assert first_repayment.transaction_id == txns[0].id
        assert second_repayment.transaction_id is None

    def test_rounding_is_conserved(self, debt_service):
        debts = [_lent(debt_service, "10", name=f"Debt {i}") for i in range(3)]

        result = debt_service.batch_repayment(OWNER, [d.id for d in debts], "10")

        assert [o.amount for o in result.outcomes] == [D("3.33"), D("3.33"), D("3.34")]

    def test_settled_debts_are_skipped(self, debt_service):
        settled = _lent(debt_service, "20", name="Settled")
        debt_service.add_repayment(OWNER, settled.id, "20")
        open_debt = _lent(debt_service, "40", name="Open")

        result = debt_service.batch_repayment(OWNER, [settled.id, open_debt.id], "40")

        assert [o.outcome for o in result.outcomes] == ["skipped", "updated"]
        assert len(debt_service.get_repayments(OWNER, settled.id)) == 1
        assert debt_service.require_debt(OWNER, open_debt.id).status is DebtStatus.SETTLED

    def test_adjustment_is_split_too(self, debt_service):
        first = _lent(debt_service, "60", name="Dinner")
        second = _lent(debt_service, "40", name="Taxi")

        debt_service.batch_repayment(OWNER, [first.id, second.id], "50", adjustment_amount="10")

        assert debt_service.require_debt(OWNER, first.id).adjustment_total == D("6.00")
        assert debt_service.require_debt(OWNER, second.id).adjustment_total == D("4.00")

    def test_mixed_roles_rejected(self, debt_service):
        lent = _lent(debt_service, "60")
        borrowed = debt_service.create_debt(OWNER, "Loan", "40", role="borrowed")

        with pytest.raises(InvalidOperationError, match="Cannot mix lent and borrowed"):
            debt_service.batch_repayment(OWNER, [lent.id, borrowed.id], "10")
        assert debt_service.get_repayments(OWNER, lent.id) == []

    def test_overpayment_rejected(self, debt_service):
        first = _lent(debt_service, "60")
        second = _lent(debt_service, "40", name="Taxi")

        with pytest.raises(InvalidOperationError, match="exceeds total remaining"):
            debt_service.batch_repayment(OWNER, [first.id, second.id], "100.01")

    def test_all_settled_rejected(self, debt_service):
        debt = _lent(debt_service, "20")
        debt_service.add_repayment(OWNER, debt.id, "20")

        with pytest.raises(InvalidOperationError, match="already settled"):
            debt_service.batch_repayment(OWNER, [debt.id], "5")

    def test_institutional_rejected(self, debt_service, car_loan):
        with pytest.raises(InvalidOperationError):
            debt_service.batch_repayment(OWNER, [car_loan.id], "5")

    def test_unknown_debt_rolls_back(self, debt_service):
        debt = _lent(debt_service, "20")
        with pytest.raises(NotFoundError):
            debt_service.batch_repayment(OWNER, [debt.id, 999], "5")
        assert debt_service.get_repayments(OWNER, debt.id) == []


class TestDebtMaintenance:
    """Tests for listing, updating and deleting debts."""

    def test_get_debts_filters(self, debt_service, car_loan):
        _lent(debt_service, "40", settlement_group_id="trip")
        debt_service.create_debt(OWNER, "Loan", "40", role="borrowed", counterparty_name="Carol")

        assert len(debt_service.get_debts(OWNER)) == 3
        assert [v.debt.name for v in debt_service.get_debts(OWNER, role="borrowed")] == ["Loan"]
        assert [v.debt.name for v in debt_service.get_debts(OWNER, counterparty_name="Bob")] == ["Dinner"]
        assert debt_service.get_debts("bob") == []
        assert debt_service.get_debt_settlement_groups(OWNER) == ["trip"]
        assert [v.debt.name for v in debt_service.get_debts_by_settlement_group(OWNER, "trip")] == ["Dinner"]

    def test_becomes_overdue_as_time_passes(self, debt_service, clock):
        debt = _lent(debt_service, "40", due_date=date(2024, 5, 1))
        assert debt_service.get_debt(OWNER, debt.id).debt.status is DebtStatus.OPEN

        clock.set(date(2024, 6, 1))

        assert debt_service.get_debt(OWNER, debt.id).debt.status is DebtStatus.OVERDUE
        assert [v.debt.id for v in debt_service.get_debts(OWNER, status="overdue")] == [debt.id]
        assert debt_service.get_debts(OWNER, status="open") == []

    def test_settled_debt_stays_settled_after_due_date(self, debt_service, clock):
        debt = _lent(debt_service, "40", due_date=date(2024, 5, 1))
        debt_service.add_repayment(OWNER, debt.id, "40")

        clock.set(date(2024, 6, 1))

        assert debt_service.get_debt(OWNER, debt.id).debt.status is DebtStatus.SETTLED
        assert debt_service.get_debts(OWNER, status="overdue") == []

    def test_unknown_status_filter(self, debt_service):
        with pytest.raises(ValidationError, match="Unknown debt status"):
            debt_service.get_debts(OWNER, status="forgotten")

    def test_update_debt_due_date_recomputes_status(self, debt_service):
        debt = _lent(debt_service, "40")

        debt = debt_service.update_debt(OWNER, debt.id, due_date=date(2024, 3, 1), notes="Ask again")

        assert debt.status is DebtStatus.OVERDUE
        assert debt.notes == "Ask again"

    def test_update_debt_validation(self, debt_service):
        debt = _lent(debt_service, "40")
        with pytest.raises(ValidationError):
            debt_service.update_debt(OWNER, debt.id, status="forgotten")
        with pytest.raises(NotFoundError):
            debt_service.update_debt(OWNER, debt.id, account_id=999)

    def test_delete_debt_keeps_transactions(self, debt_service, transaction_service, temp_db, car_loan):
        debt_service.catch_up_debt(OWNER, car_loan.id)

        deleted = debt_service.delete_debt(OWNER, car_loan.id)

        assert deleted.id == car_loan.id
        with pytest.raises(NotFoundError):
            debt_service.get_debt(OWNER, car_loan.id)
        assert temp_db.list_debt_updates(car_loan.id) == []
        assert len(transaction_service.list_transactions(OWNER)) == 3


def test_debt_cli_flow(cli_runner, temp_db):
    db_args = ["--db-path", temp_db.database_path]
    cli_runner.invoke(cli, db_args + ["account", "create", "Wallet", "--balance", "100"])

    created = cli_runner.invoke(
        cli,
        db_args + ["debt", "create", "Dinner", "--role", "lent", "--principal", "60", "--counterparty", "Bob", "--account", "Wallet"],
    )
    cli_runner.invoke(cli, db_args + ["debt", "create", "Taxi", "--role", "lent", "--principal", "40"])
    batch = cli_runner.invoke(cli, db_args + ["debt", "batch-repay", "1", "2", "--amount", "50", "--account", "Wallet"])
    listed = cli_runner.invoke(cli, db_args + ["debt", "list", "--role", "lent"])
    repayments = cli_runner.invoke(cli, db_args + ["debt", "repayments", "1"])

    assert created.exit_code == 0
    assert "Created lent debt 'Dinner'" in created.output
    assert batch.exit_code == 0
    assert "Debt 1: 30.00" in batch.output
    assert "Debt 2: 20.00" in batch.output
    assert "Linked transaction" in batch.output
    assert "Dinner" in listed.output
    assert "Taxi" in listed.output
    assert "30.00" in repayments.output


def test_debt_cli_catch_up(cli_runner, temp_db):
    db_args = ["--db-path", temp_db.database_path]
    cli_runner.invoke(
        cli,
        db_args
        + ["debt", "create", "Loan", "--principal", "1000", "--installment", "100", "--frequency", "weekly", "--start-date", "tomorrow"],
    )

    caught_up = cli_runner.invoke(cli, db_args + ["debt", "catch-up", "1"])
    early = cli_runner.invoke(cli, db_args + ["debt", "pay-early", "1"])
    shown = cli_runner.invoke(cli, db_args + ["debt", "show", "1"])

    assert "Applied 0 installment(s)" in caught_up.output
    assert early.exit_code == 0
    assert "Current balance: 900.00" in shown.output


def test_debt_cli_errors(cli_runner, temp_db):
    db_args = ["--db-path", temp_db.database_path]
    cli_runner.invoke(cli, db_args + ["debt", "create", "Dinner", "--role", "lent", "--principal", "60"])

    missing = cli_runner.invoke(cli, db_args + ["debt", "show", "99"])
    wrong_path = cli_runner.invoke(cli, db_args + ["debt", "catch-up", "1"])

    assert missing.exit_code == 1
    assert "Debt 99 not found" in missing.output
    assert wrong_path.exit_code == 1
    assert "institutional" in wrong_path.output
