from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sports_booking.auth.context import ActorContext
from sports_booking.auth.dependencies import get_db, require_actor
from sports_booking.models.user import RevokedToken

router = APIRouter()


@router.get("/me")
def me(actor: ActorContext = Depends(require_actor)):
    return {
        "user_id": actor.user_id,
        "email": actor.email,
        "role": actor.role,
        "is_staff": actor.is_staff,
    }


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(actor: ActorContext = Depends(require_actor), db: Session = Depends(get_db)):
    if not actor.token_id:
        raise HTTPException(status_code=400, detail="Token cannot be revoked: it carries no jti claim")

    try:
        if not db.query(RevokedToken).filter(RevokedToken.jti == actor.token_id).first():
            db.add(RevokedToken(jti=actor.token_id, user_id=actor.user_id))
            db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable. Verify DATABASE_URL and Postgres credentials.",
        ) from exc
