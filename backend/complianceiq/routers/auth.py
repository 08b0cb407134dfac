from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import uuid

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import AuthUser, AuthSession
from ..settings import settings

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)
logging.getLogger('passlib').setLevel(logging.ERROR)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

MAX_PASSWORD_BYTES = 72


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


class User(BaseModel):
	username: str


class RegisterRequest(BaseModel):
	username: str
	password: str
	email: Optional[str] = None


def hash_password(password: str) -> str:
	if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
		raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
	return pwd_context.hash(password)


def ensure_seed_user(db: Session) -> bool:
	"""Create the configured seed account if it is missing. Returns True when created."""
	username = settings.seed_username
	password = settings.seed_password_plain
	if not username or not password:
		return False
	if db.get(AuthUser, username) is not None:
		return False
	db.add(AuthUser(username=username, password_hash=hash_password(password)))
	db.commit()
	logger.info("Created seed user %s", username)
	return True


def authenticate_user(db: Session, username: str, password: str) -> Optional[User]:
	row = db.get(AuthUser, username)
	if row is None or not pwd_context.verify(password, row.password_hash):
		return None
	return User(username=row.username)


def create_access_token(username: str, session_id: str, expires_delta: Optional[timedelta] = None) -> str:
	if expires_delta is None:
		minutes = settings.access_token_expire_minutes
		expires_delta = timedelta(minutes=minutes) if minutes > 0 else timedelta(days=1)
	claims = {"sub": username, "jti": session_id, "exp": datetime.now(timezone.utc) + expires_delta}
	return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _decode_token(token: str) -> tuple[str, str]:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		raise credentials_exception
	username, jti = payload.get("sub"), payload.get("jti")
	if not username or not jti:
		raise credentials_exception
	return username, jti


@router.post("/token", response_model=Token)
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	user = authenticate_user(db, form_data.username, form_data.password)
	if not user:
		logger.info("Failed login for %s", form_data.username)
		raise HTTPException(status_code=401, detail="Incorrect username or password")
	# One server-side session per token so logout and cleanup can revoke it
	session_id = uuid.uuid4().hex
	try:
		db.add(AuthSession(session_id=session_id, username=user.username))
		db.commit()
	except SQLAlchemyError:
		db.rollback()
		logger.exception("Failed to persist session for %s", user.username)
		raise HTTPException(status_code=500, detail="Could not create session")
	return Token(access_token=create_access_token(user.username, session_id))


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
	username, jti = _decode_token(token)
	try:
		row = db.get(AuthSession, jti)
		if row is None or row.username != username:
			raise HTTPException(status_code=401, detail="Session expired or revoked")
		row.last_activity_at = datetime.utcnow()
		db.commit()
	except SQLAlchemyError:
		# Fail closed
		db.rollback()
		raise HTTPException(status_code=401, detail="Could not validate credentials")
	return User(username=username)


@router.get("/me", response_model=User)
def me(user: User = Depends(get_current_user)):
	return user


@router.post("/logout", status_code=204)
def logout(token: str = Depends(oauth2_scheme), user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	_, jti = _decode_token(token)
	row = db.get(AuthSession, jti)
	if row is not None:
		db.delete(row)
		db.commit()
	logger.info("User %s logged out", user.username)


@router.post("/register", status_code=201)
def register(req: RegisterRequest, db: Session = Depends(get_db)):
	username = (req.username or "").strip()
	if not username or not req.password:
		raise HTTPException(status_code=400, detail="username and password are required")
	if not 3 <= len(username) <= 128:
		raise HTTPException(status_code=400, detail="username must be 3-128 characters")
	if db.get(AuthUser, username) is not None:
		raise HTTPException(status_code=409, detail="username already exists")
	try:
		password_hash = hash_password(req.password)
	except ValueError as err:
		raise HTTPException(status_code=400, detail=str(err))
	db.add(AuthUser(username=username, password_hash=password_hash, email=(req.email or "").strip() or None))
	db.commit()
	logger.info("Registered user %s", username)
	return {"ok": True}
