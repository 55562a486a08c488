"""
Authentication and session service for Crudzaso.

Users live under the users key, the signed-in principal under the session
key. Passwords are stored as salted PBKDF2 hashes.
"""

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta

from crudzaso.config import SessionConfig
from crudzaso.errors import EmailAlreadyRegistered, InvalidCredentials, NotAuthenticated
from crudzaso.models.user import Identity, Session, User, normalize_email
from crudzaso.store import get_store
from crudzaso.store.keys import REMEMBER_ME_KEY, SESSION_KEY, USERS_KEY
from crudzaso.timeutil import utcnow
from crudzaso.validation import validate_login, validate_registration

logger = logging.getLogger(__name__)

HASH_ALGORITHM = "pbkdf2_sha256"
HASH_ITERATIONS = 60_000


def hash_password(password: str, salt: str | None = None, iterations: int = HASH_ITERATIONS) -> str:
    """Hash a password as "pbkdf2_sha256$<iterations>$<salt>$<hex digest>"."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    return f"{HASH_ALGORITHM}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    """Check a password against a stored hash. Malformed hashes never match."""
    try:
        algorithm, iterations, salt, expected = encoded.split("$")
        if algorithm != HASH_ALGORITHM:
            return False
        digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), int(iterations))
    except (AttributeError, ValueError):
        return False
    return hmac.compare_digest(digest.hex(), expected)


# Compared against when the email is unknown so both failure paths do the same work.
_DUMMY_HASH = hash_password(secrets.token_hex(8))


class AuthService:
    """
    Session/identity provider.

    Authenticates users, registers new ones and tracks the single active
    session of this context.
    """

    def __init__(self, store=None, config: SessionConfig | None = None):
        """
        Initialize auth service.

        Args:
            store: Optional KeyValueStore. If not provided, uses global store.
            config: Session settings (TTL, auto-login after registration)
        """
        self._store = store
        self.config = config or SessionConfig()

    @property
    def store(self):
        """Get the key-value store."""
        if self._store is None:
            self._store = get_store()
        return self._store

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(hours=self.config.ttl_hours)

    async def load_users(self) -> list[User]:
        records = await self.store.read_json(USERS_KEY, default=[])
        if not isinstance(records, list):
            logger.warning(f"Ignoring '{USERS_KEY}': expected a list")
            return []

        users = []
        for record in records:
            try:
                users.append(User.from_dict(record))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping unreadable user record: {e}")
        return users

    async def save_users(self, users: list[User]) -> None:
        await self.store.write_json(USERS_KEY, [user.to_dict() for user in users])

    async def find_user(self, email: str) -> User | None:
        """Look up a user by email, trimmed and case-insensitive."""
        wanted = normalize_email(email)
        for user in await self.load_users():
            if user.email == wanted:
                return user
        return None

    async def get_user(self, user_id: str) -> User | None:
        for user in await self.load_users():
            if user.id == user_id:
                return user
        return None

    async def _check_credentials(self, email: str, password: str) -> User:
        user = await self.find_user(email)
        if user is None:
            verify_password(password, _DUMMY_HASH)
            raise InvalidCredentials()
        if not verify_password(password, user.password_hash):
            raise InvalidCredentials()
        return user

    async def authenticate(self, email: str, password: str) -> Identity:
        """
        Verify credentials without starting a session.

        Raises:
            InvalidCredentials: for an unknown email or a wrong password alike
        """
        user = await self._check_credentials(email, password)
        return Identity(
            user_id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            department=user.department,
        )

    async def _start_session(self, user: User, now: datetime | None = None) -> Session:
        session = Session.start(user, self.session_ttl, now)
        await self.store.write_json(SESSION_KEY, session.to_dict())
        logger.info(f"Session started for {user.email} (expires {session.expires.isoformat()})")
        return session

    async def login(
        self,
        email: str,
        password: str,
        remember_me: bool = False,
        now: datetime | None = None,
    ) -> Session:
        """
        Authenticate and start a session.

        Raises:
            ValidationError: if the form values are malformed
            InvalidCredentials: if the credentials do not match
        """
        email = validate_login(email, password)
        try:
            user = await self._check_credentials(email, password)
        except InvalidCredentials:
            logger.warning(f"Failed login attempt for {email}")
            raise

        session = await self._start_session(user, now)
        if remember_me:
            await self.store.write_json(REMEMBER_ME_KEY, {"email": user.email})
        else:
            await self.store.delete(REMEMBER_ME_KEY)
        return session

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        confirm_password: str,
        role: str = "Student",
        department: str = "General",
        now: datetime | None = None,
    ) -> Identity:
        """
        Register a new account.

        Starts a session right away when auto-login is enabled.

        Raises:
            ValidationError: if the form values are invalid
            EmailAlreadyRegistered: if the email is taken (case-insensitive)
        """
        values = validate_registration(name, email, password, confirm_password)

        users = await self.load_users()
        if any(user.email == values["email"] for user in users):
            raise EmailAlreadyRegistered(values["email"])

        user = User(
            name=values["name"],
            email=values["email"],
            password_hash=hash_password(password),
            role=role or "Student",
            department=department or "General",
            registration_date=now,
        )
        await self.save_users(users + [user])
        logger.info(f"Registered user {user.email}")

        if self.config.auto_login_after_register:
            await self._start_session(user, now)

        return Identity(
            user_id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            department=user.department,
        )

    async def current_session(self, now: datetime | None = None) -> Session | None:
        """
        The active session, if any.

        Expired or malformed stored sessions are cleared and reported as absent.
        """
        data = await self.store.read_json(SESSION_KEY)
        if data is None:
            return None

        try:
            session = Session.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Clearing malformed session: {e}")
            await self.store.delete(SESSION_KEY)
            return None

        if not session.is_valid(now):
            logger.info(f"Session for {session.email} expired; clearing")
            await self.store.delete(SESSION_KEY)
            return None

        return session

    async def current_identity(self, now: datetime | None = None) -> Identity | None:
        session = await self.current_session(now)
        return session.identity if session else None

    async def require_session(self, now: datetime | None = None) -> Session:
        """
        Raises:
            NotAuthenticated: if nobody is signed in
        """
        session = await self.current_session(now)
        if session is None:
            raise NotAuthenticated()
        return session

    async def logout(self) -> None:
        """Clear the session and the remembered email."""
        session = await self.store.read_json(SESSION_KEY)
        await self.store.delete(SESSION_KEY)
        await self.store.delete(REMEMBER_ME_KEY)
        if isinstance(session, dict):
            logger.info(f"Signed out {session.get('email')}")

    async def remembered_email(self) -> str | None:
        data = await self.store.read_json(REMEMBER_ME_KEY)
        if isinstance(data, dict) and data.get("email"):
            return data["email"]
        return None

    async def update_display_name(self, user_id: str, name: str) -> None:
        """Propagate a profile name change to the user record and the active session."""
        users = await self.load_users()
        changed = False
        for user in users:
            if user.id == user_id and user.name != name:
                user.name = name
                changed = True
        if changed:
            await self.save_users(users)

        session = await self.current_session()
        if session is not None and session.user_id == user_id:
            session.name = name
            await self.store.write_json(SESSION_KEY, session.to_dict())
