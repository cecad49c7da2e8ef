"""
Account Service Layer - registration and credential checks.
"""
import logging
from typing import Dict, Type

from django.db import IntegrityError

from core.exceptions import ConflictError, ValidationFailed
from .models import Account

logger = logging.getLogger(__name__)


def register_account(model: Type[Account], data: Dict) -> Account:
    """
    Create an account of the given role with a hashed password.

    Raises:
        ConflictError: If the email is already registered for this role
    """
    email = data['email'].strip().lower()
    if model.objects.filter(email=email).exists():
        raise ConflictError("User Already Exists")

    fields = {key: value for key, value in data.items() if key != 'password'}
    fields['email'] = email
    account = model(**fields)
    account.set_password(data['password'])
    try:
        account.save()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        raise ConflictError("User Already Exists")

    logger.info(f"Registered {model.__name__} #{account.pk} ({email})")
    return account


def authenticate_account(model: Type[Account], email: str, password: str) -> Account:
    """
    Return the account matching the credentials.

    Raises:
        ValidationFailed: Unknown email or wrong password (same message for both)
    """
    try:
        account = model.objects.get(email=email.strip().lower())
    except model.DoesNotExist:
        raise ValidationFailed("Invalid credentials")

    if not account.check_password(password):
        logger.warning(f"Failed login for {model.__name__} #{account.pk}")
        raise ValidationFailed("Invalid credentials")

    return account
