import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from sports_booking.auth import jwt_handler
from sports_booking.auth.context import ActorContext
from sports_booking.database import SessionLocal
from sports_booking.models.user import Profile, RevokedToken

security = HTTPBearer(auto_error=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def build_actor(payload: dict, db: Session) -> ActorContext:
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")

    token_id = payload.get("jti")
    if token_id and db.query(RevokedToken).filter(RevokedToken.jti == token_id).first():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has been revoked")

    email = payload.get("email")
    role = payload.get("role")
    if not email or not role:
        profile = db.query(Profile).filter(Profile.id == user_id).first()
        if profile is not None:
            email = email or profile.email
            role = role or profile.role

    return ActorContext(user_id=str(user_id), email=email, role=role or "user", token_id=token_id)


def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> ActorContext | None:
    """Actor for the request, or None when no bearer token was sent."""
    if credentials is None:
        return None

    try:
        payload = jwt_handler.decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    return build_actor(payload, db)


def require_actor(actor: ActorContext | None = Depends(get_current_actor)) -> ActorContext:
    if actor is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return actor


def require_staff(actor: ActorContext = Depends(require_actor)) -> ActorContext:
    if not actor.is_staff:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Staff access required")
    return actor
