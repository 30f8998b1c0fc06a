from fastapi import APIRouter, Depends, HTTPException
from typing import List, Optional

from studysphere.models.schemas import Paper, PaperFilter, PaperIn, User
from studysphere.routers.deps import get_storage, require_user
from studysphere.services.community import publish_paper
from studysphere.storage.base import IStorage

router = APIRouter(prefix="/api/papers", tags=["papers"])


def _paper_or_404(paper: Optional[Paper]) -> Paper:
    if paper is None:
        raise HTTPException(status_code=404, detail="Paper not found")
    return paper


@router.post("", response_model=Paper, status_code=201)
def upload_paper(payload: PaperIn, user: User = Depends(require_user), storage: IStorage = Depends(get_storage)):
    return publish_paper(storage, user.id, payload)


@router.get("", response_model=List[Paper])
def list_papers(
    course: Optional[str] = None,
    year: Optional[int] = None,
    institution: Optional[str] = None,
    storage: IStorage = Depends(get_storage),
):
    return storage.get_papers(PaperFilter(course=course, year=year, institution=institution))


@router.get("/{paper_id}", response_model=Paper)
def get_paper(paper_id: int, storage: IStorage = Depends(get_storage)):
    return _paper_or_404(storage.get_paper(paper_id))


@router.post("/{paper_id}/download", response_model=Paper)
def download_paper(paper_id: int, storage: IStorage = Depends(get_storage)):
    return _paper_or_404(storage.increment_paper_downloads(paper_id))
