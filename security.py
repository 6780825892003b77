import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict, ValidationError

import config
from errors import Forbidden, InvalidCredential, MissingCredential
from schemas import Role

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class Identity(BaseModel):
    """Who a verified token says the caller is."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    email: str
    name: str
    role: Role


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return pwd_context.verify(password, hashed)
    except ValueError:
        logger.warning("Stored password hash is not in a recognised format")
        return False


def create_access_token(identity: Identity, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=config.JWT_EXPIRE_DAYS))
    to_encode = {
        "sub": identity.id,
        "email": identity.email,
        "name": identity.name,
        "role": identity.role,
        "exp": expire,
    }
    return jwt.encode(to_encode, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_token(token: str) -> Identity:
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except JWTError as exc:
        raise InvalidCredential() from exc
    try:
        return Identity(
            id=payload.get("sub"),
            email=payload.get("email"),
            name=payload.get("name"),
            role=payload.get("role"),
        )
    except ValidationError as exc:
        raise InvalidCredential() from exc


def authorize(header_value: Optional[str]) -> Identity:
    """Verify an ``Authorization: Bearer <token>`` header value.

    Raises ``MissingCredential`` when there is no token segment at all and
    ``InvalidCredential`` when the token does not verify or its claim is
    incomplete.
    """
    parts = (header_value or "").split()
    if len(parts) < 2:
        raise MissingCredential()
    return decode_token(parts[1])


def get_current_identity(request: Request) -> Identity:
    path = request.url.path
    try:
        identity = authorize(request.headers.get("authorization"))
    except MissingCredential:
        logger.info(f"No token provided for {path}")
        raise
    except InvalidCredential as exc:
        logger.info(f"Invalid token for {path}: {exc.__cause__}")
        raise
    logger.info(f"User {identity.id} authenticated for {path}")
    return identity


def ensure_owner(identity: Identity, owner_id: str) -> None:
    if identity.id != owner_id:
        logger.warning(f"User {identity.id} attempted to modify resource owned by {owner_id}")
        raise Forbidden()
