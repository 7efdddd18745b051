"""
Asset Repository - data access layer for Asset model.
Optimized with optional session parameter for transaction reuse.
All writes are bulk upserts or bulk deletes keyed by id, never
read-modify-write of cached rows.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, or_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from db_engine import get_engine
from models import Asset
from services.errors import StoreWriteError

logger = logging.getLogger(__name__)

# Every column an upsert may overwrite; id is the conflict key and never changes
UPSERT_COLUMNS = (
    'symbol', 'name', 'category',
    'price', 'change', 'change_percent', 'volume', 'day_high', 'day_low',
    'open_price', 'previous_close', 'fifty_two_week_high', 'fifty_two_week_low',
    'average_volume', 'market_cap', 'image', 'last_updated',
)

_INSERTS = {
    'sqlite': sqlite_insert,
    'postgresql': pg_insert,
}


class AssetRepository:
    """Repository for Asset reads, bulk upserts and bulk deletes."""

    @staticmethod
    def get_all(session: Optional[Session] = None) -> List[Asset]:
        """
        Retrieve all assets from the database, ordered by symbol.

        Args:
            session: Optional existing session for transaction reuse

        Returns:
            List of all Asset objects
        """
        def _get_all(sess: Session) -> List[Asset]:
            statement = select(Asset).order_by(Asset.symbol)
            results = sess.exec(statement)
            return list(results.all())

        if session is not None:
            return _get_all(session)
        else:
            with Session(get_engine()) as session:
                return _get_all(session)

    @staticmethod
    def get_by_symbol(symbol: str, session: Optional[Session] = None) -> Optional[Asset]:
        """
        Retrieve an asset by its quote-format symbol.

        Args:
            symbol: Symbol to look up (case-insensitive)
            session: Optional existing session for transaction reuse

        Returns:
            Asset object or None if not found
        """
        def _get_by_symbol(sess: Session) -> Optional[Asset]:
            statement = select(Asset).where(Asset.symbol == symbol.strip().upper())
            return sess.exec(statement).first()

        if session is not None:
            return _get_by_symbol(session)
        else:
            with Session(get_engine()) as session:
                return _get_by_symbol(session)

    @staticmethod
    def get_by_category(category: str, session: Optional[Session] = None) -> List[Asset]:
        """Retrieve all assets of one category."""
        def _get_by_category(sess: Session) -> List[Asset]:
            statement = select(Asset).where(Asset.category == category).order_by(Asset.symbol)
            return list(sess.exec(statement).all())

        if session is not None:
            return _get_by_category(session)
        else:
            with Session(get_engine()) as session:
                return _get_by_category(session)

    @staticmethod
    def upsert_many(rows: List[Dict[str, Any]], session: Optional[Session] = None) -> int:
        """
        Insert or update many assets in one statement, keyed by id.

        A conflicting row is only overwritten when the incoming price is
        nonzero or the stored price is already zero, so an unpriced quote
        never wipes a good price.

        Args:
            rows: Column dicts; each must carry every column in UPSERT_COLUMNS plus id
            session: Optional existing session for transaction reuse

        Returns:
            Number of rows sent to the store

        Raises:
            StoreWriteError: the store rejected the statement
        """
        if not rows:
            return 0

        def _upsert(sess: Session) -> int:
            dialect = sess.get_bind().dialect.name
            insert = _INSERTS.get(dialect)
            if insert is None:
                raise StoreWriteError(f"Bulk upsert is not supported on {dialect}")

            table = Asset.__table__
            statement = insert(table).values(rows)
            excluded = statement.excluded
            statement = statement.on_conflict_do_update(
                index_elements=[table.c.id],
                set_={column: excluded[column] for column in UPSERT_COLUMNS},
                where=or_(excluded.price != 0, table.c.price == 0)
            )
            try:
                sess.connection().execute(statement)
                sess.commit()
            except SQLAlchemyError as e:
                sess.rollback()
                logger.error(f"Asset upsert of {len(rows)} rows failed: {e}")
                raise StoreWriteError(str(e)) from e
            return len(rows)

        if session is not None:
            return _upsert(session)
        else:
            with Session(get_engine()) as session:
                return _upsert(session)

    @staticmethod
    def delete_by_ids(ids: Iterable[str], session: Optional[Session] = None) -> int:
        """
        Delete assets by id in one statement.

        Returns:
            Number of rows deleted
        """
        ids = list(ids)
        if not ids:
            return 0

        def _delete(sess: Session) -> int:
            try:
                result = sess.connection().execute(delete(Asset.__table__).where(Asset.__table__.c.id.in_(ids)))
                sess.commit()
            except SQLAlchemyError as e:
                sess.rollback()
                logger.error(f"Deleting assets {ids} failed: {e}")
                raise StoreWriteError(str(e)) from e
            return result.rowcount

        if session is not None:
            return _delete(session)
        else:
            with Session(get_engine()) as session:
                return _delete(session)

    @staticmethod
    def delete_by_symbol(symbol: str, session: Optional[Session] = None) -> bool:
        """
        Administrative delete of a single asset by symbol.

        Returns:
            True if a row was deleted, False if no asset had that symbol
        """
        def _delete(sess: Session) -> bool:
            asset = AssetRepository.get_by_symbol(symbol, session=sess)
            if asset is None:
                return False
            return AssetRepository.delete_by_ids([asset.id], session=sess) > 0

        if session is not None:
            return _delete(session)
        else:
            with Session(get_engine()) as session:
                return _delete(session)
