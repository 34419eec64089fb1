import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from youni.database.connection import get_db
from youni.database.models import Occupation
from youni.rag import get_vector_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/occupations", tags=["occupations"])


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class OccupationOut(BaseModel):
    code: str
    title: str
    description: Optional[str] = None
    tasks: Optional[Any] = None
    skills: Optional[Any] = None
    knowledge: Optional[Any] = None
    abilities: Optional[Any] = None
    work_context: Optional[Any] = None
    work_values: Optional[Any] = None
    interests: Optional[Any] = None
    work_styles: Optional[Any] = None
    wages: Optional[Any] = None
    outlook: Optional[Any] = None
    riasec_code: Optional[str] = None

    class Config:
        from_attributes = True


class OccupationPage(BaseModel):
    occupations: list[OccupationOut]
    total: int
    limit: int
    offset: int


class SearchResult(BaseModel):
    code: str
    title: str
    description: Optional[str] = None
    riasec_code: Optional[str] = None
    confidence: Optional[float] = None


class SearchOut(BaseModel):
    query: str
    method: str                      # "semantic" | "title"
    results: list[SearchResult]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=OccupationPage,
    summary="List imported O*NET occupations",
)
def list_occupations(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    total = db.query(Occupation).count()
    rows = (
        db.query(Occupation)
        .order_by(Occupation.title, Occupation.code)
        .offset(offset)
        .limit(limit)
        .all()
    )
    return {"occupations": rows, "total": total, "limit": limit, "offset": offset}


@router.get(
    "/search",
    response_model=SearchOut,
    summary="Search occupations",
    description=(
        "Semantic search over the occupation index.  When the index is "
        "unavailable or returns nothing, falls back to a case-insensitive "
        "title match."
    ),
)
def search_occupations(
    q: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
):
    query = q.strip()

    try:
        hits = get_vector_store().search(query, top_k=limit)
    except Exception as exc:
        logger.warning("Semantic occupation search unavailable: %s", exc)
        hits = []

    if hits:
        rows = db.query(Occupation).filter(Occupation.code.in_([h.code for h in hits])).all()
        by_code = {occ.code: occ for occ in rows}
        results = [
            SearchResult(
                code=h.code,
                title=by_code[h.code].title,
                description=by_code[h.code].description,
                riasec_code=by_code[h.code].riasec_code,
                confidence=h.confidence,
            )
            for h in hits
            if h.code in by_code
        ]
        if results:
            return SearchOut(query=query, method="semantic", results=results)

    rows = (
        db.query(Occupation)
        .filter(Occupation.title.ilike(f"%{query}%"))
        .order_by(Occupation.title)
        .limit(limit)
        .all()
    )
    return SearchOut(
        query=query,
        method="title",
        results=[
            SearchResult(
                code=occ.code,
                title=occ.title,
                description=occ.description,
                riasec_code=occ.riasec_code,
            )
            for occ in rows
        ],
    )


@router.get(
    "/{code}",
    response_model=OccupationOut,
    summary="Get one occupation by O*NET code",
)
def get_occupation(code: str, db: Session = Depends(get_db)):
    occupation = db.query(Occupation).filter(Occupation.code == code).first()
    if not occupation:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Occupation not found.",
        )
    return occupation
