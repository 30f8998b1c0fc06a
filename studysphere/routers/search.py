from fastapi import APIRouter, Depends
from typing import List

from studysphere.models.schemas import DiscussionPost, Paper
from studysphere.routers.deps import get_storage
from studysphere.services.search import search_discussions, search_papers
from studysphere.storage.base import IStorage

router = APIRouter(prefix="/api/search", tags=["search"])


@router.get("/papers", response_model=List[Paper])
def papers(q: str = "", storage: IStorage = Depends(get_storage)):
    return search_papers(storage, q)


@router.get("/discussions", response_model=List[DiscussionPost])
def discussions(q: str = "", storage: IStorage = Depends(get_storage)):
    return search_discussions(storage, q)
