"""
Stateless JWT authentication

Tokens are issued by the account service. This service only verifies them and
rebuilds the caller from the claims, without a database round trip.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import AuthenticationError
from src.service.carpool.domain.entity.user_entity import User


class JwtAuth:
    def __init__(self) -> None:
        self.secret = settings.SECRET_KEY.get_secret_value()
        self.algorithm = settings.ALGORITHM
        self.token_expire_days = settings.ACCESS_TOKEN_EXPIRE_DAYS

    def create_jwt_token(self, user: User) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            'sub': user.id,
            'exp': now + timedelta(days=self.token_expire_days),
            'iat': now,
            'user_id': user.id,
            'email': user.email,
            'name': user.name,
            'timezone': user.timezone,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_jwt_token(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError as e:
            raise AuthenticationError('Invalid token') from e

    def get_current_user_info_from_jwt(self, token: Optional[str]) -> User:
        if not token:
            raise AuthenticationError('Not authenticated')

        payload = self.decode_jwt_token(token)

        user_id = payload.get('user_id') or payload.get('sub')
        email = payload.get('email')
        name = payload.get('name')
        if not user_id or not email or not name:
            raise AuthenticationError('Invalid token')

        return User(id=str(user_id), email=email, name=name, timezone=payload.get('timezone'))
