# shared/common/authentication.py
"""
Bearer token authentication.

Tokens are issued by the platform's identity service; this service only
verifies them. The decoded claims become a TokenUser, which is what
request.user holds for the rest of the request.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import jwt
from django.conf import settings
from rest_framework import authentication, exceptions

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ['exp', 'iat', 'sub', 'iss']


class TokenUser:
    """Identity carried by a verified token. Nothing is loaded from the database."""

    is_active = True
    is_authenticated = True
    is_anonymous = False

    def __init__(self, claims: Dict[str, Any]):
        self.payload = claims
        self.id: Optional[str] = claims.get('sub')
        self.email: Optional[str] = claims.get('email')
        self.name: str = claims.get('name') or ''
        self.organization_id: Optional[str] = claims.get('organization_id')
        self.roles: List[str] = _roles_from_claims(claims)

    def __str__(self) -> str:
        return f"TokenUser({self.id})"


def _roles_from_claims(claims: Dict[str, Any]) -> List[str]:
    roles = claims.get('roles')
    if roles:
        return [str(r) for r in roles]
    # legacy tokens: single 'role' claim
    role = claims.get('role')
    return [role] if role else []


class JWTAuthentication(authentication.BaseAuthentication):
    """
    Reads 'Authorization: Bearer <token>'. Requests without the header, or
    with another scheme, are left to the next authenticator.
    """

    keyword = 'Bearer'

    def authenticate(self, request) -> Optional[Tuple[TokenUser, Dict]]:
        header = authentication.get_authorization_header(request)
        if not header:
            return None

        try:
            scheme, _, token = header.decode('utf-8').partition(' ')
        except UnicodeDecodeError:
            raise exceptions.AuthenticationFailed('Authorization header is not valid UTF-8')

        if scheme.lower() != self.keyword.lower():
            return None
        token = token.strip()
        if not token or ' ' in token:
            raise exceptions.AuthenticationFailed('Malformed bearer token')

        return self.authenticate_token(token)

    def authenticate_token(self, token: str) -> Tuple[TokenUser, Dict]:
        conf = settings.JWT_SETTINGS
        try:
            claims = jwt.decode(
                token,
                conf['VERIFYING_KEY'],
                algorithms=[conf['ALGORITHM']],
                issuer=conf['ISSUER'],
                options={'require': REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            raise exceptions.AuthenticationFailed('Token has expired')
        except jwt.InvalidTokenError as e:
            logger.warning(f"Rejected bearer token: {e}")
            raise exceptions.AuthenticationFailed('Invalid token')

        return TokenUser(claims), claims

    def authenticate_header(self, request) -> str:
        return self.keyword
