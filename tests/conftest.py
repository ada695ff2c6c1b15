from typing import Dict, List, Optional, Sequence

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from main import app
from repositories import get_book_repository, get_bookinstance_repository
from schemas import BookInstance, BookInstanceRecord, BookRecord


class InMemoryBookRepository:
    def __init__(self, books: Optional[List[BookRecord]] = None):
        self.books: Dict[str, BookRecord] = {b.id: b for b in books or []}
        self.calls: List[str] = []

    def find_all(self, fields: Optional[Sequence[str]] = None, sort_by: Optional[str] = None) -> List[BookRecord]:
        self.calls.append("find_all")
        books = list(self.books.values())
        if sort_by:
            books.sort(key=lambda b: getattr(b, sort_by) or "")
        return books

    def find_by_id(self, book_id, fields: Optional[Sequence[str]] = None) -> Optional[BookRecord]:
        return self.books.get(str(book_id))


class InMemoryBookInstanceRepository:
    def __init__(self, books: InMemoryBookRepository):
        self.books = books
        self.docs: Dict[str, BookInstance] = {}
        self.calls: List[str] = []

    def add(self, instance: BookInstance) -> str:
        new_id = str(ObjectId())
        self.docs[new_id] = instance
        return new_id

    def _record(self, instance_id: str, populate: bool) -> BookInstanceRecord:
        instance = self.docs[instance_id]
        record = BookInstanceRecord(id=instance_id, **instance.model_dump())
        if populate:
            record.book = self.books.find_by_id(instance.book) or instance.book
        return record

    def find_all(self, populate: bool = False, book_fields=None) -> List[BookInstanceRecord]:
        self.calls.append("find_all")
        return [self._record(i, populate) for i in self.docs]

    def find_by_id(self, instance_id: str, populate: bool = False, book_fields=None) -> Optional[BookInstanceRecord]:
        self.calls.append("find_by_id")
        if instance_id not in self.docs:
            return None
        return self._record(instance_id, populate)

    def create(self, instance: BookInstance) -> BookInstanceRecord:
        self.calls.append("create")
        new_id = self.add(instance)
        return self._record(new_id, populate=False)

    def update_by_id(self, instance_id: str, instance: BookInstance) -> bool:
        self.calls.append("update_by_id")
        if instance_id not in self.docs:
            return False
        self.docs[instance_id] = instance
        return True

    def delete_by_id(self, instance_id: str) -> bool:
        self.calls.append("delete_by_id")
        return self.docs.pop(instance_id, None) is not None


@pytest.fixture
def books():
    return InMemoryBookRepository([
        BookRecord(id=str(ObjectId()), title="The Wise Man's Fear", isbn="9788401352836"),
        BookRecord(id=str(ObjectId()), title="Apes and Angels", isbn="9780765379528"),
    ])


@pytest.fixture
def instances(books):
    return InMemoryBookInstanceRepository(books)


@pytest.fixture
def client(books, instances):
    app.dependency_overrides[get_book_repository] = lambda: books
    app.dependency_overrides[get_bookinstance_repository] = lambda: instances
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
