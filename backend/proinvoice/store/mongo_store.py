from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import ConnectionFailure, OperationFailure, PyMongoError

from proinvoice.config.settings import settings
from proinvoice.core.exceptions import (
    IndexUnavailableError, StorageError, StoreUnavailableError, TransactionConflictError,
)
from proinvoice.core.retry import commit_retry
from proinvoice.store.base import (
    DocumentStore, OrderBy, Transaction, index_key, needs_composite_index,
    split_server_timestamps,
)

logger = logging.getLogger(__name__)

# BadValue (hint inexistente), NoQueryExecutionPlans (notablescan),
# QueryExceededMemoryLimitNoDiskUseAllowed (sort en memoria sin índice)
INDEX_ERROR_CODES = {291, 292}
HINT_ERROR_CODE = 2
WRITE_CONFLICT_CODE = 112


def translate_error(exc: PyMongoError) -> Exception:
    """Traduce errores de pymongo a la taxonomía de ProInvoice."""
    if exc.has_error_label("TransientTransactionError"):
        return TransactionConflictError("Conflicto transitorio en transacción MongoDB", cause=exc)
    if isinstance(exc, ConnectionFailure):
        return StoreUnavailableError(f"MongoDB no disponible: {exc}", cause=exc)
    if isinstance(exc, OperationFailure):
        if exc.code == WRITE_CONFLICT_CODE:
            return TransactionConflictError("WriteConflict en MongoDB", cause=exc)
        if exc.code in INDEX_ERROR_CODES or (
                exc.code == HINT_ERROR_CODE and "hint" in str(exc).lower()):
            return IndexUnavailableError(
                "La consulta requiere un índice compuesto inexistente",
                details={"code": exc.code}, cause=exc,
            )
    return StorageError(f"Error de MongoDB: {exc}", cause=exc)


def _is_unknown_commit(exc: BaseException) -> bool:
    return isinstance(exc, PyMongoError) and exc.has_error_label("UnknownTransactionCommitResult")


def to_mongo(doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    doc = {k: v for k, v in data.items() if k != "id"}
    doc["_id"] = doc_id
    return doc


def from_mongo(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    out = {k: v for k, v in doc.items() if k != "_id"}
    out["id"] = str(doc["_id"])
    return out


def to_mongo_filter(filters: Dict[str, Any]) -> Dict[str, Any]:
    return {("_id" if k == "id" else k): v for k, v in filters.items()}


class MongoTransaction(Transaction):
    def __init__(self, db, session) -> None:
        self._db = db
        self._session = session
        self._ended = False

    async def _end(self) -> None:
        if not self._ended:
            self._ended = True
            await self._session.end_session()

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            doc = await self._db[collection].find_one({"_id": doc_id}, session=self._session)
        except PyMongoError as e:
            raise translate_error(e) from e
        return from_mongo(doc)

    async def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        plain, stamps = split_server_timestamps(data)
        coll = self._db[collection]
        try:
            await coll.replace_one({"_id": doc_id}, to_mongo(doc_id, plain),
                                   upsert=True, session=self._session)
            if stamps:
                await coll.update_one({"_id": doc_id},
                                      {"$currentDate": {field: True for field in stamps}},
                                      session=self._session)
        except PyMongoError as e:
            raise translate_error(e) from e

    async def commit(self) -> None:
        try:
            async for attempt in commit_retry(_is_unknown_commit):
                with attempt:
                    await self._session.commit_transaction()
        except PyMongoError as e:
            raise translate_error(e) from e
        finally:
            await self._end()

    async def abort(self) -> None:
        try:
            if not self._ended and self._session.in_transaction:
                await self._session.abort_transaction()
        except PyMongoError as e:
            # El error original de la transacción es el que se propaga
            logger.warning("⚠️ No se pudo abortar la transacción MongoDB: %s", e)
        finally:
            await self._end()


class MongoDocumentStore(DocumentStore):
    """
    Adaptador MongoDB (motor). Requiere replica set para transacciones
    multi-documento.
    """

    def __init__(self,
                 connection_string: Optional[str] = None,
                 database_name: Optional[str] = None,
                 require_query_indexes: Optional[bool] = None,
                 max_attempts: Optional[int] = None,
                 retry_max_wait: Optional[float] = None) -> None:
        super().__init__(max_attempts=max_attempts, retry_max_wait=retry_max_wait)
        self.conn_str = connection_string or settings.MONGODB_URL
        self.db_name = database_name or settings.MONGODB_DATABASE
        self.require_query_indexes = (settings.MONGODB_REQUIRE_QUERY_INDEXES
                                      if require_query_indexes is None else require_query_indexes)
        self._client: Optional[AsyncIOMotorClient] = None

    def _get_client(self) -> AsyncIOMotorClient:
        if not self._client:
            self._client = AsyncIOMotorClient(
                self.conn_str,
                serverSelectionTimeoutMS=settings.MONGODB_TIMEOUT_MS,
                tz_aware=True,
            )
            logger.info("MongoDocumentStore configurado: db=%s", self.db_name)
        return self._client

    def _get_db(self):
        return self._get_client()[self.db_name]

    async def ping(self) -> bool:
        try:
            await self._get_client().admin.command("ping")
            return True
        except PyMongoError as e:
            logger.error("❌ Error conectando a MongoDB: %s", e)
            return False

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            doc = await self._get_db()[collection].find_one({"_id": doc_id})
        except PyMongoError as e:
            raise translate_error(e) from e
        return from_mongo(doc)

    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> bool:
        plain, stamps = split_server_timestamps(fields)
        update: Dict[str, Any] = {}
        if plain:
            update["$set"] = {k: v for k, v in plain.items() if k != "id"}
        if stamps:
            update["$currentDate"] = {field: True for field in stamps}
        try:
            res = await self._get_db()[collection].update_one({"_id": doc_id}, update)
        except PyMongoError as e:
            raise translate_error(e) from e
        return res.matched_count > 0

    async def delete(self, collection: str, doc_id: str) -> bool:
        try:
            res = await self._get_db()[collection].delete_one({"_id": doc_id})
        except PyMongoError as e:
            raise translate_error(e) from e
        return res.deleted_count > 0

    async def find(self, collection: str, filters: Dict[str, Any],
                   order_by: Optional[OrderBy] = None) -> List[Dict[str, Any]]:
        cursor = self._get_db()[collection].find(to_mongo_filter(filters))
        if order_by:
            cursor = cursor.sort(list(order_by))
            if self.require_query_indexes and needs_composite_index(filters, order_by):
                cursor = cursor.hint(list(index_key(to_mongo_filter(filters), order_by)))
        try:
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise translate_error(e) from e
        return [from_mongo(d) for d in docs]

    async def ensure_index(self, collection: str, keys: Sequence[Tuple[str, int]]) -> None:
        try:
            await self._get_db()[collection].create_index(list(keys))
        except PyMongoError as e:
            raise translate_error(e) from e

    async def begin(self) -> Transaction:
        try:
            session = await self._get_client().start_session()
            session.start_transaction()
        except PyMongoError as e:
            raise translate_error(e) from e
        return MongoTransaction(self._get_db(), session)

    async def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None
