"""
Database Handler Module.

SQLite persistence for registered loan offers. This is the persistence
collaborator of the registration flow: ``save`` never raises for
individual rows, it reports how many of the requested offers were
stored.

Features:
    - Automatic schema creation
    - Per-record insert with failure counting
    - Query helpers (list, lookup, statistics)

Author: ML Engineering Team
"""

import json
import re
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from config import get_config
from document_parser.utils.logger import get_logger
from document_parser.utils.helpers import ensure_directory, is_populated
from document_parser.utils.exceptions import PersistenceError, ValidationError
from document_parser.aggregation.registration import PersistenceOutcome

logger = get_logger(__name__)

# Offer fields stored in their own column, in table order
OFFER_COLUMNS = [
    'anbieter', 'angebotsdatum',
    # Kreditdaten
    'kreditbetrag', 'auszahlungsbetrag', 'auszahlungsdatum', 'datum1Rate', 'laufzeit',
    'ratenanzahl', 'kreditende', 'sondertilgungen', 'restwert',
    # Zinskonditionen
    'fixzinssatz', 'fixzinsperiode', 'fixzinssatz_in_jahren', 'sollzinssatz', 'effektivzinssatz',
    # Einzelgebuehren
    'bearbeitungsgebuehr', 'schaetzgebuehr', 'kontofuehrungsgebuehr', 'kreditpruefkosten',
    'vermittlerentgelt', 'grundbucheintragungsgebuehr', 'grundbuchseingabegebuehr',
    'grundbuchsauszug', 'grundbuchsgesuch', 'legalisierungsgebuehr',
    # Gesamtkosten
    'gesamtkosten', 'gesamtbetrag',
    # Zahlungen
    'monatsrate',
]

INSERT_COLUMNS = ['fileName'] + OFFER_COLUMNS + ['rawJson', 'processingTime', 'confidence']

_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


class LoanOfferStore:
    """
    Stores loan offers in a SQLite table.

    Connections are opened per operation, so a store instance can be
    shared between requests.

    Attributes:
        db_path: Path to the SQLite database file.
        table_name: Name of the offers table.

    Example:
        >>> store = LoanOfferStore("data/loan_offers.db")
        >>> outcome = store.save([{"fileName": "a.pdf", "anbieter": "Bank A"}])
        >>> outcome.saved_count
        1
    """

    def __init__(
        self,
        db_path: Optional[Union[str, Path]] = None,
        table_name: Optional[str] = None
    ) -> None:
        """
        Initialize the store and create the table if needed.

        Args:
            db_path: Database file. If None, uses ``paths.database``.
            table_name: Table name. If None, uses ``output.database.table``.

        Raises:
            ValidationError: If the table name is not a plain identifier.
            PersistenceError: If the database directory or schema cannot be created.
        """
        self.db_path = Path(db_path or get_config("paths.database", "data/loan_offers.db"))
        self.table_name = table_name or get_config("output.database.table", "loan_offers")
        if not _IDENTIFIER.match(self.table_name):
            raise ValidationError(f"Invalid table name: {self.table_name!r}")

        try:
            ensure_directory(self.db_path.parent)
        except OSError as e:
            raise PersistenceError("open database", str(e))
        self._create_tables()

        logger.info(f"LoanOfferStore initialized (db: {self.db_path})")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def _create_tables(self) -> None:
        offer_columns = ",\n            ".join(f"{name} TEXT" for name in OFFER_COLUMNS)
        create_sql = f"""
        CREATE TABLE IF NOT EXISTS {self.table_name} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            fileName TEXT NOT NULL,
            {offer_columns},
            rawJson TEXT NOT NULL,
            processingTime INTEGER NOT NULL,
            confidence REAL NOT NULL,
            createdAt TEXT DEFAULT (datetime('now'))
        )
        """

        try:
            with closing(self._connect()) as conn:
                conn.execute(create_sql)
                conn.execute(f"""
                    CREATE INDEX IF NOT EXISTS idx_{self.table_name}_anbieter
                    ON {self.table_name} (anbieter)
                """)
                conn.commit()
            logger.debug("Database tables created/verified")
        except sqlite3.Error as e:
            raise PersistenceError("create tables", str(e))

    @staticmethod
    def _column_value(value: Any) -> Optional[str]:
        if not is_populated(value):
            return None
        if isinstance(value, (dict, list)):
            return json.dumps(value, ensure_ascii=False)
        return str(value)

    def _row(self, offer: Dict[str, Any], processing_time_ms: int, confidence: float) -> tuple:
        file_name = offer.get("fileName") or "unknown"
        values = [file_name]
        values.extend(self._column_value(offer.get(name)) for name in OFFER_COLUMNS)
        values.append(json.dumps(offer, ensure_ascii=False))
        values.append(int(processing_time_ms))
        values.append(float(confidence))
        return tuple(values)

    def save(
        self,
        offers: List[Dict[str, Any]],
        processing_time_ms: int = 0,
        confidences: Optional[List[float]] = None
    ) -> PersistenceOutcome:
        """
        Insert offers one by one.

        A failing row is logged and counted, the remaining rows are still
        inserted. Only a database that cannot be opened fails the whole
        call, and even then the failure is reported in the outcome.

        Args:
            offers: Offer records, each with a ``fileName``.
            processing_time_ms: Stored with every row.
            confidences: Per-offer confidence, aligned with ``offers``.

        Returns:
            PersistenceOutcome with saved and requested counts.
        """
        confidences = confidences or []
        requested = len(offers)
        insert_sql = (
            f"INSERT INTO {self.table_name} ({', '.join(INSERT_COLUMNS)}) "
            f"VALUES ({', '.join('?' for _ in INSERT_COLUMNS)})"
        )

        saved = 0
        first_error = None
        try:
            with closing(self._connect()) as conn:
                for index, offer in enumerate(offers):
                    confidence = confidences[index] if index < len(confidences) else 0.0
                    try:
                        conn.execute(insert_sql, self._row(offer, processing_time_ms, confidence))
                        conn.commit()
                        saved += 1
                    except (sqlite3.Error, TypeError, ValueError) as e:
                        logger.error(f"Failed to insert offer for file {offer.get('fileName')}: {e}")
                        first_error = first_error or str(e)
        except sqlite3.Error as e:
            logger.error(f"Database save error: {e}")
            return PersistenceOutcome(False, saved, requested, str(e))

        logger.info(f"Saved {saved}/{requested} loan offers to {self.table_name}")
        return PersistenceOutcome(saved == requested, saved, requested, first_error)

    def get_all(self, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
        """
        Retrieve stored offers, newest first.

        Raises:
            PersistenceError: If the query fails.
        """
        query = f"SELECT * FROM {self.table_name} ORDER BY createdAt DESC, id DESC LIMIT ? OFFSET ?"
        try:
            with closing(self._connect()) as conn:
                rows = conn.execute(query, (limit, offset)).fetchall()
            return [dict(row) for row in rows]
        except sqlite3.Error as e:
            raise PersistenceError("get_all", str(e))

    def get_by_id(self, offer_id: int) -> Optional[Dict[str, Any]]:
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(
                    f"SELECT * FROM {self.table_name} WHERE id = ?", (offer_id,)
                ).fetchone()
            return dict(row) if row else None
        except sqlite3.Error as e:
            raise PersistenceError("get_by_id", str(e))

    def update(self, offer_id: int, changes: Dict[str, Any]) -> bool:
        """
        Update offer columns and keep ``rawJson`` in sync.

        Unknown keys are ignored.

        Returns:
            True if the offer existed and was updated.
        """
        updatable = ['fileName'] + OFFER_COLUMNS
        fields = [name for name in updatable if name in changes]
        if not fields:
            return False

        current = self.get_by_id(offer_id)
        if current is None:
            return False

        try:
            raw = json.loads(current["rawJson"])
        except (TypeError, ValueError):
            raw = {}
        raw.update({name: changes[name] for name in fields})

        assignments = ", ".join(f"{name} = ?" for name in fields)
        values = [self._column_value(changes[name]) for name in fields]
        values.extend([json.dumps(raw, ensure_ascii=False), offer_id])

        try:
            with closing(self._connect()) as conn:
                cursor = conn.execute(
                    f"UPDATE {self.table_name} SET {assignments}, rawJson = ? WHERE id = ?",
                    values
                )
                conn.commit()
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise PersistenceError("update", str(e))

    def delete(self, offer_id: int) -> bool:
        try:
            with closing(self._connect()) as conn:
                cursor = conn.execute(f"DELETE FROM {self.table_name} WHERE id = ?", (offer_id,))
                conn.commit()
                deleted = cursor.rowcount > 0
        except sqlite3.Error as e:
            raise PersistenceError("delete", str(e))

        if deleted:
            logger.debug(f"Deleted loan offer {offer_id}")
        return deleted

    def stats(self) -> Dict[str, Any]:
        """
        Summary statistics of the stored offers.

        Returns:
            Dictionary with total offers, distinct files, distinct
            providers and average confidence. Empty on query failure.
        """
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(f"""
                    SELECT
                        COUNT(*) AS totalOffers,
                        COUNT(DISTINCT fileName) AS totalFiles,
                        COUNT(DISTINCT anbieter) AS totalProviders,
                        AVG(confidence) AS averageConfidence
                    FROM {self.table_name}
                """).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Could not get statistics: {e}")
            return {}

        return {
            'totalOffers': row['totalOffers'],
            'totalFiles': row['totalFiles'],
            'totalProviders': row['totalProviders'],
            'averageConfidence': round(row['averageConfidence'] or 0.0, 4),
        }
