from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..deps import get_owner_id
from ..models import User
from ..models.meeting import utcnow

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"]
)


@router.post("/sync-user", response_model=schemas.UserRead)
def sync_user(payload: schemas.UserSync, owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    """Create or refresh the local profile of the authenticated user."""
    user = db.query(User).filter(User.id == owner_id).first()
    if user is None:
        user = User(id=owner_id, created_at=utcnow())
        db.add(user)
    for field, value in payload.model_dump().items():
        setattr(user, field, value)
    user.updated_at = utcnow()
    db.commit()
    db.refresh(user)
    return user
