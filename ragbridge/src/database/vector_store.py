"""
ragbridge - LanceDB Retrieval Backend
======================================
Self-hosted alternative to the Ragie API: a LanceDB table of embedded
documents searched by vector similarity.

  • Table creation is deferred to the first ``add_documents`` call so the
    vector column can be typed as a fixed-size list of the embedder's
    actual dimension.
  • The DB connection is cached per path behind a lock to avoid
    file-lock contention between backend instances.
  • The embedder is injected (any LangChain-compatible object), so tests
    run with a deterministic fake.
  • ``retrieve`` satisfies the ``RetrievalBackend`` protocol; the blocking
    LanceDB search runs in a worker thread.

Usage:
    from langchain_google_genai import GoogleGenerativeAIEmbeddings
    from ragbridge.src.database.vector_store import LanceDBBackend

    embedder = GoogleGenerativeAIEmbeddings(model=settings.EMBEDDING_MODEL, google_api_key=...)
    store = LanceDBBackend(embedder)
    store.add_documents(texts=[...], metadatas=[...])
    results = await store.retrieve("query text", top_k=5, filter={}, include_metadata=True)
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Protocol, runtime_checkable

import lancedb
import pyarrow as pa

from ragbridge.config.settings import settings
from ragbridge.src.core.models import DocumentMetadata, RetrievalFilter, RetrievalResult
from ragbridge.src.utils.logger import get_logger

logger = get_logger(__name__)

# ── Type Aliases ──────────────────────────────────────────────────────
DocumentRecord = dict[str, str | int | list[float]]
SearchRow = dict[str, Any]


@runtime_checkable
class Embedder(Protocol):
    """Structural type for any LangChain-compatible embedding model."""

    def embed_documents(self, texts: list[str]) -> list[list[float]]: ...

    def embed_query(self, text: str) -> list[float]: ...


# ── Constants ──────────────────────────────────────────────────────────
_EMBED_BATCH_SIZE = 64
_METADATA_COLUMNS: tuple[str, ...] = ("source", "date", "chunk_index")
_DB_LOCK = threading.Lock()
_db_connection_cache: dict[str, lancedb.DBConnection] = {}


def build_schema(dimension: int) -> pa.Schema:
    """Table schema for embeddings of *dimension* floats."""
    return pa.schema([
        pa.field("vector", pa.list_(pa.float32(), dimension)),
        pa.field("text", pa.utf8()),
        pa.field("source", pa.utf8()),
        pa.field("date", pa.utf8()),
        pa.field("chunk_index", pa.int32()),
    ])


def build_where_clause(filter_dict: RetrievalFilter) -> str:
    """
    Translate an equality filter into a LanceDB ``WHERE`` clause.

    Strings are single-quoted with embedded quotes doubled; numbers and
    booleans are emitted bare.  Keys must be plain column names.
    """
    clauses: list[str] = []
    for key, value in filter_dict.items():
        if not key.isidentifier():
            raise ValueError(f"Invalid filter column: {key!r}")
        if isinstance(value, bool):
            clauses.append(f"{key} = {str(value).lower()}")
        elif isinstance(value, (int, float)):
            clauses.append(f"{key} = {value}")
        else:
            escaped = str(value).replace("'", "''")
            clauses.append(f"{key} = '{escaped}'")
    return " AND ".join(clauses)


def distance_to_score(distance: float) -> float:
    """Map an L2 distance (0 … ∞) onto a (0, 1] relevance score."""
    return 1.0 / (1.0 + max(distance, 0.0))


def _get_connection(db_path: str) -> lancedb.DBConnection:
    """Return a cached ``lancedb.DBConnection`` for *db_path* (thread-safe)."""
    if db_path not in _db_connection_cache:
        with _DB_LOCK:
            if db_path not in _db_connection_cache:
                logger.info("Opening new LanceDB connection: %s", db_path)
                _db_connection_cache[db_path] = lancedb.connect(db_path)
    return _db_connection_cache[db_path]


class LanceDBBackend:
    """
    Retrieval backend over a LanceDB vector table.

    Parameters
    ----------
    embedder : Embedder
        Object exposing ``embed_documents`` and ``embed_query``.
    db_path
        Database directory.  Defaults to ``settings.LANCEDB_PATH``.
    table_name
        Table name.  Defaults to ``settings.LANCEDB_TABLE_NAME``.
    """

    name = "lancedb"

    __slots__ = ("embedder", "_db_path", "_table_name", "db", "table")

    def __init__(self, embedder: Embedder, db_path: str | None = None, table_name: str | None = None) -> None:
        self.embedder: Embedder = embedder
        self._db_path: str = str(db_path or settings.LANCEDB_PATH)
        self._table_name: str = table_name or settings.LANCEDB_TABLE_NAME
        self.db: lancedb.DBConnection | None = None
        self.table: lancedb.table.Table | None = None
        self._connect()


    def _connect(self) -> None:
        """Open the connection and the table, if the table already exists."""
        try:
            self.db = _get_connection(self._db_path)
            if self._table_name in self.db.list_tables().tables:
                self.table = self.db.open_table(self._table_name)
                logger.info("Opened existing table '%s' (%d rows).", self._table_name, self.table.count_rows())
            else:
                logger.info("Table '%s' not found; it will be created on first insert.", self._table_name)
        except OSError as exc:
            logger.error("LanceDB filesystem error at %s: %s", self._db_path, exc)
            raise


    def add_documents(self, texts: list[str], metadatas: list[DocumentMetadata]) -> int:
        """
        Embed text chunks in batches and persist them with metadata.

        Returns the number of rows added.  Raises ``ValueError`` when the
        two lists differ in length.
        """
        if len(texts) != len(metadatas):
            raise ValueError(f"Length mismatch: {len(texts)} texts vs {len(metadatas)} metadatas.")
        if not texts:
            return 0

        all_vectors: list[list[float]] = []
        for i in range(0, len(texts), _EMBED_BATCH_SIZE):
            batch = texts[i : i + _EMBED_BATCH_SIZE]
            try:
                all_vectors.extend(self.embedder.embed_documents(batch))
            except Exception as exc:
                logger.error("Embedding batch %d–%d failed: %s", i, i + len(batch) - 1, exc)
                raise

        records: list[DocumentRecord] = [
            {"vector": vec, "text": txt, "source": str(meta.get("source", "unknown")), "date": str(meta.get("date", "")), "chunk_index": int(meta.get("chunk_index", 0))}
            for txt, vec, meta in zip(texts, all_vectors, metadatas)
        ]

        if self.table is None:
            if self.db is None:
                raise RuntimeError(f"LanceDB connection for '{self._table_name}' is not initialised.")
            self.table = self.db.create_table(self._table_name, schema=build_schema(len(all_vectors[0])))
            logger.info("Created table '%s' (dimension=%d).", self._table_name, len(all_vectors[0]))

        self.table.add(records)
        logger.info("Added %d rows. Table '%s' now has %d rows.", len(records), self._table_name, self.table.count_rows())
        return len(records)


    def search(self, query_text: str, limit: int = 5, filter_dict: RetrievalFilter | None = None) -> list[SearchRow]:
        """Vector similarity search; rows carry a ``_distance`` column."""
        if self.table is None:
            raise RuntimeError(f"Vector table '{self._table_name}' is not initialised.")

        query_vector = self.embedder.embed_query(query_text)
        query = self.table.search(query_vector).limit(limit)
        if filter_dict:
            where_str = build_where_clause(filter_dict)
            query = query.where(where_str)
            logger.debug("Searching with filter: %s", where_str)

        rows: list[SearchRow] = query.to_list()
        logger.debug("LanceDB search returned %d rows.", len(rows))
        return rows


    async def retrieve(self, query: str, top_k: int, filter: RetrievalFilter | None = None, include_metadata: bool = True) -> list[RetrievalResult]:
        rows = await asyncio.to_thread(self.search, query, top_k, filter)
        return [self._to_result(row, include_metadata) for row in rows]


    @staticmethod
    def _to_result(row: SearchRow, include_metadata: bool) -> RetrievalResult:
        metadata = {key: row[key] for key in _METADATA_COLUMNS if row.get(key) not in (None, "")} if include_metadata else None
        distance = row.get("_distance")
        score = distance_to_score(float(distance)) if distance is not None else None
        return RetrievalResult(content=str(row.get("text", "")), metadata=metadata, score=score)


    def count(self) -> int:
        """Return the total number of rows in the table."""
        if self.table is None:
            return 0
        return self.table.count_rows()


    def drop_table(self) -> None:
        """Drop the vector table (used before a full re-seed)."""
        if self.db is None or self.table is None:
            logger.warning("Table '%s' does not exist — nothing to drop.", self._table_name)
            return
        self.db.drop_table(self._table_name)
        self.table = None
        logger.info("Dropped table '%s'.", self._table_name)


    def __repr__(self) -> str:
        return f"LanceDBBackend(db='{self._db_path}', table='{self._table_name}', rows={self.count()})"
