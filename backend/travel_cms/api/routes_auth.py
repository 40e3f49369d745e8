from fastapi import APIRouter, Depends, HTTPException, Request, Response
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session
import logging

from travel_cms.api.schemas import LoginRequest
from travel_cms.core.config import settings
from travel_cms.core.rate_limiting import LOGIN_LIMIT, limiter
from travel_cms.core.security import SessionUser, create_session_token, optional_session, verify_password
from travel_cms.db.database import get_db
from travel_cms.db.repositories import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Dict[str, Any])
@limiter.limit(LOGIN_LIMIT)
def login(request: Request, response: Response, body: LoginRequest, db: Session = Depends(get_db)):
    """Exchange credentials for a session token (also set as a cookie)."""
    try:
        user = UserRepository(db).get_by_email(body.email.strip())
    except Exception as e:
        logger.error(f"Login lookup failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to sign in")

    if user is None or not verify_password(body.password, user.password):
        logger.warning(f"Failed sign-in for {body.email}")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = create_session_token(user)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.token_expire_minutes * 60,
        httponly=True,
        samesite="lax",
        secure=settings.environment == "production",
    )
    logger.info(f"User {user.email} signed in")
    return {"token": token, "user": user.to_dict()}


@router.get("/session", response_model=Dict[str, Any])
def current_session(session: Optional[SessionUser] = Depends(optional_session)):
    if session is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return {"user": {"id": session.id, "email": session.email, "name": session.name, "role": session.role}}


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.session_cookie_name)
    return {"message": "Signed out"}
