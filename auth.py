"""
Authentication for FoodShare

- password hashing (salted SHA256, constant-time comparison)
- bearer tokens signed with PyJWT
- Mongo-backed user directory
- AuthController: register / login returning typed results instead of raising
"""
import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Union, Dict, Any, ClassVar

import jwt
from pydantic import BaseModel, EmailStr
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from schemas import User, PublicUser, UserType

logger = logging.getLogger(__name__)


############################
# Passwords
############################

def hash_password(password: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.sha256((salt + password).encode("utf-8")).hexdigest()
    return f"{salt}${digest}"


def verify_password(password: str, stored: str) -> bool:
    try:
        salt, digest = stored.split("$")
    except ValueError:
        return False
    candidate = hashlib.sha256((salt + password).encode("utf-8")).hexdigest()
    return secrets.compare_digest(candidate, digest)


############################
# User directory
############################

class DuplicateEmailError(Exception):
    pass


class UserRecord(User):
    id: str

    def compare_password(self, candidate: str) -> bool:
        return verify_password(candidate, self.password_hash)

    def public(self) -> PublicUser:
        return PublicUser(id=self.id, name=self.name, email=self.email, user_type=self.user_type)


class MongoUserDirectory:
    def __init__(self, collection: Collection):
        self.collection = collection

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        doc = self.collection.find_one({"email": email})
        if not doc:
            return None
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        return UserRecord(**doc)

    def create(self, name: str, email: str, password: str, user_type: str) -> UserRecord:
        user = User(name=name, email=email, password_hash=hash_password(password), user_type=user_type)
        doc = user.model_dump()
        doc["created_at"] = datetime.now(timezone.utc)
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            raise DuplicateEmailError(email) from e
        return UserRecord(id=str(result.inserted_id), **user.model_dump())


############################
# Tokens
############################

class TokenService:
    def __init__(self, secret: str, algorithm: str = "HS256", ttl: timedelta = timedelta(hours=1)):
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def issue(self, user: UserRecord) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "id": user.id,
            "email": user.email,
            "iat": now,
            "exp": now + self.ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def decode(self, token: str) -> Dict[str, Any]:
        # Raises jwt.ExpiredSignatureError / jwt.InvalidTokenError
        return jwt.decode(token, self._secret, algorithms=[self.algorithm])


############################
# Requests & results
############################

class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str
    user_type: UserType


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AuthSuccess(BaseModel):
    status_code: int
    token: str
    user: PublicUser
    message: Optional[str] = None

    def body(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"status_code"}, exclude_none=True)


class AuthFailure(BaseModel):
    """Failure with a client-safe message; never carries exception text"""
    status_code: ClassVar[int] = 500
    message: str

    def body(self) -> Dict[str, Any]:
        return {"message": self.message}


class Conflict(AuthFailure):
    status_code: ClassVar[int] = 400
    message: str = "User already exists"


class Unauthorized(AuthFailure):
    status_code: ClassVar[int] = 401
    message: str = "Invalid credentials"


class Internal(AuthFailure):
    status_code: ClassVar[int] = 500


AuthResult = Union[AuthSuccess, Conflict, Unauthorized, Internal]


############################
# Controller
############################

class AuthController:
    """Stateless register/login handlers; safe to share across requests"""

    def __init__(self, users: MongoUserDirectory, tokens: TokenService):
        self.users = users
        self.tokens = tokens

    def register(self, req: RegisterRequest) -> AuthResult:
        try:
            if self.users.find_by_email(req.email) is not None:
                logger.info("Registration rejected, email in use: %s", req.email)
                return Conflict()
            try:
                user = self.users.create(req.name, req.email, req.password, req.user_type)
            except DuplicateEmailError:
                # Lost the race against a concurrent registration
                logger.info("Registration rejected by unique index: %s", req.email)
                return Conflict()
            token = self.tokens.issue(user)
        except Exception:
            logger.exception("Registration failed for %s", req.email)
            return Internal(message="Registration failed")
        logger.info("Registered user %s (%s)", user.id, user.user_type)
        return AuthSuccess(
            status_code=201,
            message="User registered successfully",
            token=token,
            user=user.public(),
        )

    def login(self, req: LoginRequest) -> AuthResult:
        try:
            user = self.users.find_by_email(req.email)
            # Same answer for unknown email and wrong password
            if user is None or not user.compare_password(req.password):
                logger.warning("Failed login for %s", req.email)
                return Unauthorized()
            token = self.tokens.issue(user)
        except Exception:
            logger.exception("Login failed for %s", req.email)
            return Internal(message="Login failed")
        logger.info("User %s logged in", user.id)
        return AuthSuccess(status_code=200, token=token, user=user.public())
