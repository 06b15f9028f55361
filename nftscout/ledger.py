from __future__ import annotations

import datetime
import json
import logging
from typing import Any

from sqlalchemy import (
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    select,
    text,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .errors import StartupError
from .pipeline.types import Collection, ErrorRecord, TransactionRecord

Base = declarative_base()
logger = logging.getLogger(__name__)


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def normalize_address(address: str) -> str:
    return address.strip().lower()


class CollectionRow(Base):
    __tablename__ = "collections"

    id = Column(Integer, primary_key=True)
    contract_address = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=False)
    deployer = Column(String)
    total_mints = Column(String)
    reported_flags = Column(Text, nullable=False, default="[]")
    source = Column(String)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, index=True)


class TransactionRow(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    address = Column(String, nullable=False, unique=True)
    qty = Column(Integer, nullable=False)
    hash = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)


class ErrorRow(Base):
    __tablename__ = "errors"

    id = Column(Integer, primary_key=True)
    type = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    context = Column(Text)
    timestamp = Column(DateTime, default=utcnow)

    __table_args__ = (Index("ix_errors_type_timestamp", "type", "timestamp"),)


def _async_url(url: str) -> str:
    if url.startswith("sqlite:///"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


class Ledger:
    """Durable store for collections, submitted transactions and the error trail.

    A transaction row for a contract address is the idempotency marker that
    prevents a second submission. Each call opens its own session, so the
    ledger can be shared by several pipeline stages without extra locking.
    """

    def __init__(self, url: str = "sqlite:///nftscout.db"):
        self.url = _async_url(url)
        self.engine = create_async_engine(self.url, echo=False)
        self.Session: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self.engine, expire_on_commit=False
        )

    async def connect(self) -> None:
        """Create the schema and make sure the database answers."""
        try:
            async with self.engine.begin() as conn:
                if self.url.startswith("sqlite+aiosqlite"):
                    await conn.exec_driver_sql("PRAGMA journal_mode=WAL;")
                await conn.run_sync(Base.metadata.create_all)
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            raise StartupError(f"cannot open database: {exc}") from exc
        logger.info("Connected to database %s", self.engine.url.render_as_string(hide_password=True))

    async def has_existing_transaction(self, contract_address: str) -> bool:
        async with self.Session() as session:
            q = (
                select(TransactionRow.id)
                .filter(TransactionRow.address == normalize_address(contract_address))
                .limit(1)
            )
            result = await session.execute(q)
            return result.scalar_one_or_none() is not None

    async def record_transaction(self, record: TransactionRecord) -> None:
        async with self.Session() as session:
            session.add(
                TransactionRow(
                    name=record.name,
                    address=normalize_address(record.contract_address),
                    qty=int(record.unit_count),
                    hash=record.transaction_hash,
                )
            )
            await session.commit()
        logger.info("Stored transaction: %s", record.transaction_hash)

    async def record_error(self, kind: str, message: str, context: str) -> None:
        """Append to the error trail. Failures are logged and never re-raised."""
        entry = ErrorRecord(kind=kind, message=message, context=context, timestamp=utcnow())
        try:
            async with self.Session() as session:
                session.add(
                    ErrorRow(
                        type=entry.kind,
                        message=entry.message,
                        context=entry.context,
                        timestamp=entry.timestamp,
                    )
                )
                await session.commit()
        except SQLAlchemyError:
            logger.exception("Error logging to database [%s]: %s", kind, message)
            return
        logger.info("Logged error [%s]: %s", kind, message)

    async def store_collection(self, collection: Collection) -> None:
        """Upsert ``collection`` keyed by its contract address."""
        address = normalize_address(collection.contract_address)
        flags = json.dumps(sorted(collection.reported_flags))
        async with self.Session() as session:
            result = await session.execute(
                select(CollectionRow).filter(CollectionRow.contract_address == address)
            )
            row = result.scalar_one_or_none()
            if row is None:
                session.add(
                    CollectionRow(
                        contract_address=address,
                        name=collection.name,
                        deployer=collection.deployer_address,
                        total_mints=collection.total_mints,
                        reported_flags=flags,
                        source=collection.source,
                    )
                )
                logger.debug("Inserted new collection: %s", collection.name)
            else:
                row.name = collection.name
                row.deployer = collection.deployer_address
                row.total_mints = collection.total_mints
                row.reported_flags = flags
                row.source = collection.source
                row.updated_at = utcnow()
                logger.debug("Updated existing collection: %s", collection.name)
            await session.commit()

    async def recent_collections(self, limit: int = 20) -> list[dict[str, Any]]:
        async with self.Session() as session:
            q = select(CollectionRow).order_by(CollectionRow.updated_at.desc(), CollectionRow.id.desc()).limit(limit)
            result = await session.execute(q)
            return [
                {
                    "contract_address": row.contract_address,
                    "name": row.name,
                    "deployer": row.deployer,
                    "total_mints": row.total_mints,
                    "reported_flags": json.loads(row.reported_flags or "[]"),
                    "source": row.source,
                    "updated_at": row.updated_at,
                }
                for row in result.scalars().all()
            ]

    async def recent_transactions(self, limit: int = 20) -> list[TransactionRecord]:
        async with self.Session() as session:
            q = select(TransactionRow).order_by(TransactionRow.id.desc()).limit(limit)
            result = await session.execute(q)
            return [
                TransactionRecord(
                    name=row.name,
                    contract_address=row.address,
                    unit_count=row.qty,
                    transaction_hash=row.hash,
                )
                for row in result.scalars().all()
            ]

    async def recent_errors(self, limit: int = 20) -> list[ErrorRecord]:
        async with self.Session() as session:
            q = select(ErrorRow).order_by(ErrorRow.id.desc()).limit(limit)
            result = await session.execute(q)
            return [
                ErrorRecord(
                    kind=row.type,
                    message=row.message,
                    context=row.context or "",
                    timestamp=row.timestamp,
                )
                for row in result.scalars().all()
            ]

    async def close(self) -> None:
        await self.engine.dispose()

    async def __aenter__(self) -> "Ledger":
        try:
            await self.connect()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
