from typing import Optional
from datetime import datetime, timedelta

import jwt

from app.core.config import settings
from app.models.auth import Token, TokenData
from app.utils.accounts import is_null_account, normalize_account


class TokenService:
    """
    Signs and verifies the bearer tokens that identify the calling account.
    The 'sub' claim carries the account identifier verbatim.
    """
    ALGORITHM = "HS256"

    def create_access_token(self, account: str, expires_delta: Optional[timedelta] = None) -> str:
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
        to_encode = {
            "sub": account,
            "exp": datetime.utcnow() + expires_delta,
            "type": "access"
        }
        return jwt.encode(to_encode, settings.secret_key, algorithm=self.ALGORITHM)

    def issue(self, account: str) -> Token:
        return Token(access_token=self.create_access_token(account), token_type="bearer")

    def verify_access_token(self, token: str) -> Optional[TokenData]:
        try:
            payload = jwt.decode(token, settings.secret_key,
                                 algorithms=[self.ALGORITHM])
        except jwt.PyJWTError:
            return None

        account = payload.get("sub")
        if payload.get("type") != "access" or is_null_account(account):
            return None

        return TokenData(account=normalize_account(account))
