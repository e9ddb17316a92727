from datetime import datetime, timedelta, timezone

import jwt
import pytest

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import AuthenticationError
from src.service.carpool.domain.entity.user_entity import User
from src.service.carpool.driving_adapter.http_controller.auth.current_user import _bearer_token
from src.service.carpool.driving_adapter.http_controller.auth.jwt_auth import JwtAuth


@pytest.fixture
def jwt_auth() -> JwtAuth:
    return JwtAuth()


@pytest.mark.unit
class TestJwtAuth:
    def test_token_round_trips_user_claims(self, jwt_auth):
        user = User(id='user-1', email='parent@carpool.test', name='Alex', timezone='Europe/Paris')

        token = jwt_auth.create_jwt_token(user)
        result = jwt_auth.get_current_user_info_from_jwt(token)

        assert result == user

    def test_missing_token(self, jwt_auth):
        with pytest.raises(AuthenticationError, match='Not authenticated') as exc_info:
            jwt_auth.get_current_user_info_from_jwt(None)
        assert exc_info.value.status_code == 401

    def test_token_signed_with_other_key(self, jwt_auth):
        token = jwt.encode(
            {'user_id': 'user-1', 'email': 'a@b.c', 'name': 'A'},
            'another-secret',
            algorithm=settings.ALGORITHM,
        )

        with pytest.raises(AuthenticationError, match='Invalid token'):
            jwt_auth.get_current_user_info_from_jwt(token)

    def test_expired_token(self, jwt_auth):
        token = jwt.encode(
            {
                'user_id': 'user-1',
                'email': 'a@b.c',
                'name': 'A',
                'exp': datetime.now(timezone.utc) - timedelta(minutes=1),
            },
            settings.SECRET_KEY.get_secret_value(),
            algorithm=settings.ALGORITHM,
        )

        with pytest.raises(AuthenticationError, match='Invalid token'):
            jwt_auth.get_current_user_info_from_jwt(token)

    def test_token_without_identity_claims(self, jwt_auth):
        token = jwt.encode(
            {'sub': 'user-1'}, settings.SECRET_KEY.get_secret_value(), algorithm=settings.ALGORITHM
        )

        with pytest.raises(AuthenticationError, match='Invalid token'):
            jwt_auth.get_current_user_info_from_jwt(token)


@pytest.mark.unit
@pytest.mark.parametrize(
    'header,expected',
    [
        ('Bearer abc.def', 'abc.def'),
        ('bearer abc.def', 'abc.def'),
        ('Basic abc', None),
        ('Bearer', None),
        (None, None),
    ],
)
def test_bearer_token_parsing(header, expected):
    assert _bearer_token(header) == expected
