"""
Catalog Service Layer - store creation and sales aggregation.
"""
import logging
from datetime import timedelta
from typing import Dict

from django.db import transaction
from django.db.models import Q, QuerySet, Sum
from django.utils import timezone

from accounts.models import StoreAdmin
from core.exceptions import ConflictError
from .models import Product, Store, generate_store_code

logger = logging.getLogger(__name__)


def unique_store_code() -> str:
    code = generate_store_code()
    while Store.objects.filter(store_code=code).exists():
        code = generate_store_code()
    return code


def create_store(owner: StoreAdmin, data: Dict) -> Store:
    """
    Create the store for a store admin and promote them to store owner.

    Raises:
        ConflictError: If the admin already owns a store or the name is taken
    """
    if Store.objects.filter(owner=owner).exists():
        raise ConflictError("Store already exists for this user")
    if Store.objects.filter(name__iexact=data['name']).exists():
        raise ConflictError("Store with this name already exists")

    with transaction.atomic():
        store = Store.objects.create(owner=owner, store_code=unique_store_code(), **data)
        StoreAdmin.objects.filter(pk=owner.pk).update(role=StoreAdmin.Role.STORE_OWNER)

    owner.role = StoreAdmin.Role.STORE_OWNER
    logger.info(f"Store #{store.pk} '{store.name}' created by admin #{owner.pk}")
    return store


def weekly_best_sellers(days: int = 7) -> QuerySet:
    """
    Active products ranked by units ordered over the last ``days`` days.

    Cancelled orders do not count towards sales.
    """
    from orders.models import Order

    since = timezone.now() - timedelta(days=days)
    counted_statuses = [s for s in Order.Status.values if s != Order.Status.CANCELLED]
    counted = Q(
        order_items__order__created_at__gte=since,
        order_items__order__status__in=counted_statuses,
    )
    return (
        Product.objects.filter(status=Product.Status.ACTIVE)
        .annotate(units_sold=Sum('order_items__quantity', filter=counted))
        .filter(units_sold__gt=0)
    )
