"""
Bearer-token authentication.

A request carrying ``Authorization: Bearer <token>`` is resolved to a
``Principal``: the role named in the token plus the account row it points at.
Views receive it as ``request.user`` and hand it to services explicitly.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

import jwt
from django.conf import settings
from django.utils import timezone
from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.exceptions import AuthenticationFailed

from accounts.models import Customer, StoreAdmin, Courier

logger = logging.getLogger(__name__)

CUSTOMER = 'customer'
STORE_ADMIN = 'store_admin'
COURIER = 'courier'

ROLE_MODELS = {
    CUSTOMER: Customer,
    STORE_ADMIN: StoreAdmin,
    COURIER: Courier,
}


@dataclass(frozen=True)
class Principal:
    """An authenticated caller."""
    role: str
    account: Any

    is_authenticated = True

    @property
    def id(self) -> int:
        return self.account.pk

    @property
    def store_id(self) -> Optional[int]:
        """Primary key of the store a store admin owns, if any."""
        if self.role != STORE_ADMIN:
            return None
        store = getattr(self.account, 'store', None)
        return store.pk if store is not None else None


def role_for(account) -> str:
    for role, model in ROLE_MODELS.items():
        if isinstance(account, model):
            return role
    raise ValueError(f"No principal role for {account.__class__.__name__}")


def issue_token(account) -> str:
    """Sign a token for an account, valid for JWT_EXPIRY_HOURS."""
    now = timezone.now()
    payload = {
        'sub': str(account.pk),
        'role': role_for(account),
        'iat': now,
        'exp': now + timedelta(hours=settings.JWT_EXPIRY_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def principal_from_token(token: str) -> Principal:
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={'require': ['exp', 'sub', 'role']},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationFailed('Token expired')
    except jwt.InvalidTokenError:
        raise AuthenticationFailed('Invalid Token')

    model = ROLE_MODELS.get(payload['role'])
    if model is None:
        raise AuthenticationFailed('Invalid Token')

    try:
        account = model.objects.get(pk=payload['sub'])
    except (model.DoesNotExist, ValueError):
        raise AuthenticationFailed('User not found')

    return Principal(role=payload['role'], account=account)


class BearerTokenAuthentication(BaseAuthentication):
    keyword = 'Bearer'

    def authenticate(self, request):
        parts = get_authorization_header(request).split()
        if not parts or parts[0].lower() != self.keyword.lower().encode():
            return None
        if len(parts) != 2:
            raise AuthenticationFailed('Invalid Token')

        try:
            token = parts[1].decode()
        except UnicodeError:
            raise AuthenticationFailed('Invalid Token')

        principal = principal_from_token(token)
        return principal, token

    def authenticate_header(self, request):
        return self.keyword
