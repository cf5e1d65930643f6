"""
Auth service: registration and credential checks.

Login failures are deliberately indistinguishable: an unknown email and
a wrong password both raise the same UnauthorizedError.
"""
import logging

from app.exceptions import UnauthorizedError
from app.security import TokenIssuer, verify_password
from app.services.user_service import UserService, user_to_dict

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, users: UserService, tokens: TokenIssuer) -> None:
        self.users = users
        self.tokens = tokens

    async def register(self, email: str, password: str) -> dict:
        user = await self.users.create(email, password)
        return self._token_response(user)

    async def login(self, email: str, password: str) -> dict:
        user = await self.validate_user(email, password)
        if user is None:
            logger.warning("Failed login for email=%s", email)
            raise UnauthorizedError("Invalid credentials")
        return self._token_response(user)

    async def validate_user(self, email: str, password: str) -> dict | None:
        """Return the public user for valid credentials, else None."""
        user = await self.users.find_by_email(email)
        # Always pay for one bcrypt check so timing does not reveal registered emails.
        password_ok = verify_password(password, user.password if user is not None else None)
        if user is None or not password_ok:
            return None
        return user_to_dict(user)

    def _token_response(self, user: dict) -> dict:
        return {
            "access_token": self.tokens.issue(user["id"], user["email"]),
            "user": {"id": user["id"], "email": user["email"]},
        }
