from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.dependencies import get_caller, get_db, get_now
from app.db import repository
from app.models.enums import Actor
from app.services.urgency import annotate_documents, urgency_rank

router = APIRouter(prefix="/documents", tags=["Documents"])


# =====================================================================
# DOCUMENT / INSURANCE EXPIRY
# =====================================================================
@router.get("/expiry")
def document_expiry(
    owner_id: Optional[str] = None,
    caller=Depends(get_caller),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    user_id, role = caller
    # drivers only ever see their own documents
    if role == Actor.DRIVER:
        owner_id = user_id

    views = annotate_documents(repository.fetch_documents(db, owner_id), now)
    views.sort(key=lambda view: urgency_rank(view.urgency), reverse=True)

    return {
        "documents": views,
        "expired": sum(1 for view in views if view.label == "Expired"),
        "expiring_soon": sum(1 for view in views if view.label == "Expiring soon"),
    }
