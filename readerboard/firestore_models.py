"""
Firestore document models using Python dataclasses.

Each model maps one document shape stored by the DAO:
  - `from_dict(data)` builds the model from a stored or incoming dict
  - `to_dict()` returns the write payload with absent fields dropped, so
    the payload is safe to use in a merge write

Field names follow the stored documents (Open Library names for book
metadata, camelCase for application fields) because existing data and the
backfill procedures depend on them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional


WORKS_PREFIX = "/works/"
CUSTOM_PREFIX = "custom_"

STATUS_DESIRED = "desired"
STATUS_CURRENT = "current"
STATUS_COMPLETED = "completed"
STATUS_ABANDONED = "abandoned"
STATUSES = (STATUS_DESIRED, STATUS_CURRENT, STATUS_COMPLETED, STATUS_ABANDONED)

LOG_UNITS = ("pages", "percent", "chapter")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def compact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None.

    A merge write treats a present-but-null field as "overwrite with null",
    which is not the same as leaving the field alone.
    """
    return {key: value for key, value in data.items() if value is not None}


def book_doc_id(key: str) -> str:
    """Normalize an external catalog key into a document ID ('/works/OL1W' -> 'OL1W')."""
    return key.replace(WORKS_PREFIX, "")


def is_custom_key(key: str) -> bool:
    return bool(key) and key.startswith(CUSTOM_PREFIX)


def _as_list(value) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",")]
    else:
        items = [str(part).strip() for part in value]
    items = [item for item in items if item]
    return items or None


# ===========================================================================
# 1. Book  (collection: books)
# ===========================================================================

@dataclass
class BookRecord:
    key: str = ""
    title: str = ""
    author_name: Optional[List[str]] = None
    cover_i: Optional[int] = None
    first_publish_year: Optional[int] = None
    isbn: Optional[List[str]] = None
    cover_url: Optional[str] = None

    @property
    def doc_id(self) -> str:
        return book_doc_id(self.key)

    def to_dict(self) -> Dict[str, Any]:
        return compact({
            "key": self.key,
            "title": self.title,
            "author_name": self.author_name,
            "cover_i": self.cover_i,
            "first_publish_year": self.first_publish_year,
            "isbn": self.isbn,
            "coverUrl": self.cover_url,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> BookRecord:
        return cls(
            key=data.get("key", ""),
            title=data.get("title", ""),
            author_name=_as_list(data.get("author_name")),
            cover_i=data.get("cover_i"),
            first_publish_year=data.get("first_publish_year"),
            isbn=_as_list(data.get("isbn")),
            cover_url=data.get("coverUrl") or data.get("cover_url"),
        )


# ===========================================================================
# 2. Custom Book  (collection: custom_books)
# ===========================================================================

@dataclass
class CustomBookRecord:
    title: str = ""
    author_name: Optional[List[str]] = None
    description: Optional[str] = None
    subjects: Optional[List[str]] = None
    cover_url: Optional[str] = None
    first_publish_year: Optional[int] = None
    created_by: Optional[int] = None

    # Fields a caller may change after creation
    EDITABLE = ("title", "author_name", "description", "subjects", "coverUrl", "first_publish_year")

    def to_dict(self) -> Dict[str, Any]:
        return compact({
            "title": self.title or None,
            "author_name": self.author_name,
            "description": self.description or None,
            "subjects": self.subjects,
            "coverUrl": self.cover_url or None,
            "first_publish_year": self.first_publish_year,
            "createdBy": self.created_by,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CustomBookRecord:
        return cls(
            title=(data.get("title") or "").strip(),
            author_name=_as_list(data.get("author_name")),
            description=data.get("description"),
            subjects=_as_list(data.get("subjects")),
            cover_url=data.get("coverUrl") or data.get("cover_url"),
            first_publish_year=data.get("first_publish_year"),
            created_by=data.get("createdBy"),
        )


# ===========================================================================
# 3. User Profile  (collection: users)
# ===========================================================================

@dataclass
class UserProfile:
    fid: int = 0
    username: Optional[str] = None
    display_name: Optional[str] = None
    pfp_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        # goodsID, currentPoints and lastPointsDate are owned by the
        # allocator and points aggregator, never by a profile save
        return compact({
            "fid": self.fid,
            "username": self.username,
            "displayName": self.display_name,
            "pfpUrl": self.pfp_url,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> UserProfile:
        return cls(
            fid=int(data["fid"]),
            username=data.get("username") or None,
            display_name=data.get("displayName") or data.get("display_name") or None,
            pfp_url=data.get("pfpUrl") or data.get("pfp_url") or None,
        )


# ===========================================================================
# 4. User-Book Relationship  (collection: userBooks)
# ===========================================================================

def relationship_id(user_fid, book_key: str) -> str:
    return f"{int(user_fid)}_{book_doc_id(book_key)}"


@dataclass
class UserBookRelationship:
    user_fid: int
    book_key: str
    status: str
    book_title: Optional[str] = None
    book_authors: Optional[List[str]] = None
    cover_id: Optional[int] = None
    cover_url: Optional[str] = None
    review: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def id(self) -> str:
        return relationship_id(self.user_fid, self.book_key)

    def to_dict(self) -> Dict[str, Any]:
        return compact({
            "userFid": self.user_fid,
            "bookKey": self.book_key,
            "bookTitle": self.book_title,
            "bookAuthors": self.book_authors,
            "coverId": self.cover_id,
            "coverUrl": self.cover_url,
            "status": self.status,
            "review": self.review,
            "updatedAt": self.updated_at,
        })

    @classmethod
    def from_book(cls, user_fid, book: BookRecord, status: str,
                  review: Optional[str] = None, updated_at: Optional[datetime] = None) -> UserBookRelationship:
        return cls(
            user_fid=int(user_fid),
            book_key=book.key,
            status=status,
            book_title=book.title or None,
            book_authors=book.author_name,
            cover_id=book.cover_i,
            cover_url=book.cover_url,
            review=review,
            updated_at=updated_at,
        )


# ===========================================================================
# 5. Reading Log Entry  (sub-collection: userBooks/{id}/logs)
# ===========================================================================

@dataclass
class ReadingLogEntry:
    page: int
    date: datetime
    thoughts: Optional[str] = None
    unit: Optional[str] = None
    skipped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return compact({
            "page": self.page,
            "thoughts": self.thoughts or None,
            "unit": self.unit or None,
            "skipped": self.skipped,
            "date": self.date,
        })


# ===========================================================================
# 6. Like  (sub-collection: userBooks/{id}/likes, keyed by liker fid)
# ===========================================================================

@dataclass
class LikeRecord:
    liker_fid: int
    liked_at: datetime

    @property
    def doc_id(self) -> str:
        return str(self.liker_fid)

    def to_dict(self) -> Dict[str, Any]:
        return {"likerFid": self.liker_fid, "likedAt": self.liked_at}
