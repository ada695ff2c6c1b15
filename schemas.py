"""
Database Schemas for the Library Catalog

Each Pydantic model represents a MongoDB collection.
Collection name is the lowercase of the class name:
- Book -> "book"
- BookInstance -> "bookinstance"

The *Record models are what the repositories hand back to the views: the
stored fields plus the document id and the derived urls.
"""

from datetime import date
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


class LoanStatus(str, Enum):
    AVAILABLE = "Available"
    MAINTENANCE = "Maintenance"
    LOANED = "Loaned"
    RESERVED = "Reserved"


class Book(BaseModel):
    title: str = Field(..., description="Book title")
    author: Optional[str] = Field(None, description="Author ObjectId as string")
    summary: Optional[str] = Field(None, description="Short summary")
    isbn: Optional[str] = Field(None, description="ISBN identifier")


class BookInstance(BaseModel):
    book: str = Field(..., description="Book ObjectId as string")
    imprint: str = Field(..., description="Publisher/edition of this copy")
    status: Optional[str] = Field(None, description="Loan status, see LoanStatus")
    due_back: Optional[date] = Field(None, description="Date the copy is due back")


class BookRecord(BaseModel):
    id: str
    title: Optional[str] = None
    author: Optional[str] = None
    summary: Optional[str] = None
    isbn: Optional[str] = None

    @property
    def url(self) -> str:
        return f"/catalog/book/{self.id}"


class BookInstanceRecord(BaseModel):
    id: Optional[str] = None
    # Either the bare book id or the joined book
    book: Union[BookRecord, str, None] = None
    imprint: Optional[str] = None
    status: Optional[str] = None
    due_back: Optional[date] = None

    @property
    def url(self) -> str:
        return f"/catalog/bookinstance/{self.id}"

    @property
    def book_id(self) -> Optional[str]:
        if isinstance(self.book, BookRecord):
            return self.book.id
        return self.book

    @property
    def book_title(self) -> Optional[str]:
        if isinstance(self.book, BookRecord):
            return self.book.title
        return None

    @property
    def due_back_formatted(self) -> str:
        if self.due_back is None:
            return ""
        return f"{self.due_back:%b} {self.due_back.day}, {self.due_back.year}"

    @property
    def is_loaned(self) -> bool:
        return self.status == LoanStatus.LOANED.value
