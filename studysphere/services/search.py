from typing import List, Optional

from studysphere.models.schemas import DiscussionPost, Paper
from studysphere.storage.base import IStorage


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


def search_papers(storage: IStorage, query: str) -> List[Paper]:
    q = (query or "").strip().lower()
    if not q:
        return []
    return [
        p for p in storage.get_papers()
        if _contains(p.title, q) or _contains(p.description, q) or _contains(p.course, q)
    ]


def search_discussions(storage: IStorage, query: str) -> List[DiscussionPost]:
    q = (query or "").strip().lower()
    if not q:
        return []
    return [
        d for d in storage.get_discussion_posts()
        if _contains(d.title, q)
        or _contains(d.content, q)
        or _contains(d.course, q)
        or any(_contains(tag, q) for tag in d.tags)
    ]
