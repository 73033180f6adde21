import logging

from fastapi import APIRouter, Depends, Form
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from drivebroker.core.errors import BadRequest, MissingCredentials
from drivebroker.core.security import (
    decode_access_token,
    hash_password,
    issue_access_token,
    verify_password,
)
from drivebroker.models.database import get_db
from drivebroker.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

bearer_scheme = HTTPBearer(auto_error=False)


def resolve_caller(credentials: HTTPAuthorizationCredentials | None, db: Session) -> str:
    """Verify a bearer token and return the caller's identity."""
    if credentials is None or not credentials.credentials:
        raise MissingCredentials("Missing Authorization header")
    user_id = decode_access_token(credentials.credentials)
    if db.get(User, user_id) is None:
        raise MissingCredentials("Unauthorized")
    return user_id


# --- helper: get current user id from the bearer token ---
def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> str:
    return resolve_caller(credentials, db)


@router.post("/signup", status_code=201)
def signup(username: str = Form(...), password: str = Form(...), db: Session = Depends(get_db)):
    username = username.strip()
    if not username or not password:
        raise BadRequest("Username and password are required")

    # Check if user exists
    existing_user = db.query(User).filter(User.username == username).first()
    if existing_user:
        raise BadRequest("Username already exists")

    # Save user with a hashed password
    new_user = User(username=username, password=hash_password(password))
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    logger.info("Registered user %s", new_user.id)

    return {"id": new_user.id, "username": new_user.username}


@router.post("/login")
def login(username: str = Form(...), password: str = Form(...), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.username == username.strip()).first()

    if not user or not verify_password(user.password, password):
        raise MissingCredentials("Invalid credentials")

    return {"access_token": issue_access_token(user.id), "token_type": "bearer"}
