"""Collection access for books and book instances.

Repositories are handed to the request handlers through FastAPI dependencies
(``get_book_repository`` / ``get_bookinstance_repository``) so they can be
swapped out, e.g. in tests.
"""

from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Sequence

from pymongo import ASCENDING
from pymongo.database import Database

import database
from database import create_document, get_documents, to_object_id
from schemas import BookInstance, BookInstanceRecord, BookRecord


def _book_record(doc: Dict[str, Any]) -> BookRecord:
    d = {**doc}
    d["id"] = str(d.pop("_id"))
    if d.get("author") is not None:
        d["author"] = str(d["author"])
    return BookRecord(**{k: v for k, v in d.items() if k in BookRecord.model_fields})


def _projection(fields: Optional[Sequence[str]]) -> Optional[Dict[str, int]]:
    if not fields:
        return None
    return {name: 1 for name in fields}


class BookRepository:
    """Read-only access to the ``book`` collection."""

    collection_name = "book"

    def __init__(self, db: Database):
        self.collection = db[self.collection_name]

    def find_all(self, fields: Optional[Sequence[str]] = None, sort_by: Optional[str] = None) -> List[BookRecord]:
        cursor = self.collection.find({}, _projection(fields))
        if sort_by:
            cursor = cursor.sort(sort_by, ASCENDING)
        return [_book_record(doc) for doc in cursor]

    def find_by_id(self, book_id: Any, fields: Optional[Sequence[str]] = None) -> Optional[BookRecord]:
        oid = to_object_id(book_id)
        if oid is None:
            return None
        doc = self.collection.find_one({"_id": oid}, _projection(fields))
        return _book_record(doc) if doc else None


class BookInstanceRepository:
    """CRUD access to the ``bookinstance`` collection.

    Reads can join the referenced book (``populate=True``), optionally limited
    to ``book_fields``. Dates are stored as datetimes since BSON has no plain
    date type.
    """

    collection_name = "bookinstance"

    def __init__(self, db: Database):
        self.db = db
        self.collection = db[self.collection_name]
        self.books = BookRepository(db)

    @staticmethod
    def _to_document(instance: BookInstance) -> Dict[str, Any]:
        doc = instance.model_dump()
        book_oid = to_object_id(instance.book)
        doc["book"] = book_oid if book_oid is not None else instance.book
        if isinstance(instance.due_back, date):
            doc["due_back"] = datetime.combine(instance.due_back, time.min)
        return doc

    def _to_record(self, doc: Dict[str, Any], populate: bool, book_fields: Optional[Sequence[str]]) -> BookInstanceRecord:
        due_back = doc.get("due_back")
        if isinstance(due_back, datetime):
            due_back = due_back.date()
        book_ref = doc.get("book")
        book: Any = str(book_ref) if book_ref is not None else None
        if populate and book_ref is not None:
            book = self.books.find_by_id(book_ref, book_fields) or book
        return BookInstanceRecord(
            id=str(doc["_id"]),
            book=book,
            imprint=doc.get("imprint"),
            status=doc.get("status"),
            due_back=due_back,
        )

    def find_all(self, populate: bool = False, book_fields: Optional[Sequence[str]] = None) -> List[BookInstanceRecord]:
        docs = get_documents(self.collection_name, database=self.db)
        return [self._to_record(doc, populate, book_fields) for doc in docs]

    def find_by_id(
        self,
        instance_id: str,
        populate: bool = False,
        book_fields: Optional[Sequence[str]] = None,
    ) -> Optional[BookInstanceRecord]:
        oid = to_object_id(instance_id)
        if oid is None:
            return None
        doc = self.collection.find_one({"_id": oid})
        if not doc:
            return None
        return self._to_record(doc, populate, book_fields)

    def create(self, instance: BookInstance) -> BookInstanceRecord:
        new_id = create_document(self.collection_name, self._to_document(instance), database=self.db)
        return BookInstanceRecord(id=new_id, **instance.model_dump())

    def update_by_id(self, instance_id: str, instance: BookInstance) -> bool:
        oid = to_object_id(instance_id)
        if oid is None:
            return False
        update = self._to_document(instance)
        update["updated_at"] = datetime.utcnow()
        result = self.collection.update_one({"_id": oid}, {"$set": update})
        return result.matched_count > 0

    def delete_by_id(self, instance_id: str) -> bool:
        oid = to_object_id(instance_id)
        if oid is None:
            return False
        result = self.collection.delete_one({"_id": oid})
        return result.deleted_count > 0


def _require_db() -> Database:
    if database.db is None:
        raise RuntimeError("Database not available. Check DATABASE_URL and DATABASE_NAME")
    return database.db


def get_book_repository() -> BookRepository:
    return BookRepository(_require_db())


def get_bookinstance_repository() -> BookInstanceRepository:
    return BookInstanceRepository(_require_db())
