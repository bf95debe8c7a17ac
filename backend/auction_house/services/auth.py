"""
User authentication service with JWT tokens and password hashing
"""
import logging
from datetime import timedelta
from typing import Optional
import bcrypt
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from auction_house.config import get_settings
from auction_house.models import AccountType, User
from auction_house.services.exceptions import ConflictError, PermissionDeniedError, ValidationError
from auction_house.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

settings = get_settings()

ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 8


class AuthService:
    """User authentication service"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt"""
        password_bytes = password.encode('utf-8')
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password_bytes, salt)
        return hashed.decode('utf-8')

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash"""
        password_bytes = plain_password.encode('utf-8')
        hashed_bytes = hashed_password.encode('utf-8')
        return bcrypt.checkpw(password_bytes, hashed_bytes)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email address"""
        result = await self.db.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    def _check_password(self, password: str) -> None:
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    async def create_user(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        account_type: str,
        agree_to_terms: bool = False,
        receive_updates: bool = False,
    ) -> User:
        """
        Register a new account.

        The account type is fixed at registration and decides whether the
        user can sell (create auctions) or buy (place bids).
        """
        try:
            account_type = AccountType(account_type).value
        except ValueError:
            raise ValidationError("Account type must be 'Buyer' or 'Seller'")
        if not agree_to_terms:
            raise ValidationError("You must agree to the terms and conditions")
        if not (first_name or "").strip() or not (last_name or "").strip():
            raise ValidationError("First and last name are required")
        self._check_password(password)

        if await self.get_user_by_email(email):
            raise ConflictError("Email already registered")

        user = User(
            email=email.strip().lower(),
            hashed_password=self.hash_password(password),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            account_type=account_type,
            agree_to_terms=agree_to_terms,
            receive_updates=receive_updates,
            is_active=True,
            created_at=utcnow(),
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"Registered {account_type} account {user.id}")
        return user

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """Authenticate user with email and password"""
        user = await self.get_user_by_email(email)
        if not user or not self.verify_password(password, user.hashed_password):
            return None

        if not user.is_active:
            raise PermissionDeniedError("Account is disabled")

        user.last_login = utcnow()
        await self.db.commit()

        return user

    async def update_profile(
        self,
        user: User,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        receive_updates: Optional[bool] = None,
    ) -> User:
        if first_name is not None:
            if not first_name.strip():
                raise ValidationError("First name cannot be empty")
            user.first_name = first_name.strip()
        if last_name is not None:
            if not last_name.strip():
                raise ValidationError("Last name cannot be empty")
            user.last_name = last_name.strip()
        if receive_updates is not None:
            user.receive_updates = receive_updates
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        if not self.verify_password(current_password, user.hashed_password):
            raise ValidationError("Current password is incorrect")
        self._check_password(new_password)
        user.hashed_password = self.hash_password(new_password)
        await self.db.commit()
        logger.info(f"Password changed for user {user.id}")

    async def deactivate_user(self, user: User, password: str) -> None:
        if not self.verify_password(password, user.hashed_password):
            raise ValidationError("Password is incorrect")
        user.is_active = False
        await self.db.commit()
        logger.info(f"User {user.id} deactivated their account")

    def _create_token(self, user: User, token_type: str, expires_delta: timedelta) -> str:
        payload = {
            "sub": str(user.id),
            "account_type": user.account_type,
            "exp": utcnow() + expires_delta,
            "type": token_type,
        }
        return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)

    def create_access_token(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        """Create JWT access token"""
        return self._create_token(
            user,
            "access",
            expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
        )

    def create_refresh_token(self, user: User) -> str:
        """Create JWT refresh token"""
        return self._create_token(user, "refresh", timedelta(days=settings.refresh_token_expire_days))

    def decode_token(self, token: str) -> Optional[dict]:
        """Decode and validate a JWT token"""
        try:
            return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
        except JWTError:
            return None

    async def get_user_from_token(self, token: str, token_type: str = "access") -> Optional[User]:
        """Resolve an active user from a token of the given type"""
        payload = self.decode_token(token)
        if not payload or payload.get("type") != token_type:
            return None

        try:
            user_id = int(payload.get("sub"))
        except (TypeError, ValueError):
            return None

        user = await self.get_user_by_id(user_id)
        if user is None or not user.is_active:
            return None
        return user

    async def get_current_user(self, token: str) -> Optional[User]:
        """Get current user from access token"""
        return await self.get_user_from_token(token, "access")
