"""SQLAlchemy models for pocketledger database."""

from datetime import datetime, UTC
from decimal import Decimal
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

# Every money column: exact decimal, two-decimal scale
Money = Numeric(12, 2, asdecimal=True)


class Account(Base):
    """Money-holding account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    owner_id = Column(String(64), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    type = Column(String(30), nullable=False)
    balance = Column(Money, nullable=False, default=Decimal("0.00"))
    currency = Column(String(10), nullable=False, default="USD")
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (UniqueConstraint("owner_id", "name", name="uq_account_owner_name"),)


class Category(Base):
    """Category model. The (owner, name, type) triple is unique."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    owner_id = Column(String(64), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (
        UniqueConstraint("owner_id", "name", "type", name="uq_category_owner_name_type"),
    )


class Transaction(Base):
    """Transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    owner_id = Column(String(64), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    to_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Money, nullable=False)
    type = Column(String(20), nullable=False)
    transaction_date = Column(Date, nullable=False, index=True)
    description = Column(Text, nullable=True)
    is_reimbursable = Column(Boolean, default=False, nullable=False)
    reimbursed_amount = Column(Money, default=Decimal("0.00"), nullable=False)
    counterparty_name = Column(String(100), nullable=True)
    settlement_group_id = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    account = relationship("Account", foreign_keys=[account_id])
    to_account = relationship("Account", foreign_keys=[to_account_id])
    category = relationship("Category")


class Debt(Base):
    """Debt model for institutional loans and personal lent/borrowed money."""

    __tablename__ = "debts"

    id = Column(Integer, primary_key=True)
    owner_id = Column(String(64), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    name = Column(String(100), nullable=False)
    principal = Column(Money, nullable=False)
    current_balance = Column(Money, nullable=False, default=Decimal("0.00"))
    role = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="open")

    # Institutional debts
    installment_amount = Column(Money, nullable=True)
    frequency = Column(String(20), nullable=True)
    start_date = Column(Date, nullable=True)
    next_due_date = Column(Date, nullable=True)
    term = Column(Integer, nullable=True)

    # Personal debts
    counterparty_name = Column(String(100), nullable=True)
    paid_amount = Column(Money, nullable=False, default=Decimal("0.00"))
    adjustment_total = Column(Money, nullable=False, default=Decimal("0.00"))
    due_date = Column(Date, nullable=True)
    settlement_group_id = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    updates = relationship(
        "DebtUpdate", back_populates="debt", cascade="all, delete-orphan", passive_deletes=True
    )
    repayments = relationship(
        "Repayment", back_populates="debt", cascade="all, delete-orphan", passive_deletes=True
    )


class DebtUpdate(Base):
    """Scheduled installment row; one per (debt, due date)."""

    __tablename__ = "debt_updates"

    id = Column(Integer, primary_key=True)
    debt_id = Column(Integer, ForeignKey("debts.id", ondelete="CASCADE"), nullable=False)
    update_date = Column(Date, nullable=False)
    transaction_id = Column(Integer, ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(20), nullable=False, default="paid")
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (UniqueConstraint("debt_id", "update_date", name="uq_debt_update_date"),)

    debt = relationship("Debt", back_populates="updates")


class Repayment(Base):
    """Append-only informal repayment of a personal debt."""

    __tablename__ = "repayments"

    id = Column(Integer, primary_key=True)
    debt_id = Column(Integer, ForeignKey("debts.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Money, nullable=False)
    adjustment_amount = Column(Money, nullable=False, default=Decimal("0.00"))
    date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    debt = relationship("Debt", back_populates="repayments")


class Settlement(Base):
    """Settlement model."""

    __tablename__ = "settlements"

    id = Column(Integer, primary_key=True)
    owner_id = Column(String(64), nullable=False, index=True)
    settlement_group_id = Column(String(100), nullable=True)
    counterparty_name = Column(String(100), nullable=True)
    amount = Column(Money, nullable=False)
    settlement_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs work with pysqlite
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_sqlite_transaction(connection) -> None:
    connection.exec_driver_sql("BEGIN")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _configure_sqlite_connection)
        event.listen(engine, "begin", _begin_sqlite_transaction)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
