"""
Catalog API Views with optimized queries.

Implements:
- Product listing with filters, pagination and sorting
- Product detail, category listing, related, featured, weekly best selling,
  and same-SKU offers in other stores
- Store creation (store admins), listing, top rated, and per-store products
- Category CRUD (writes restricted to store admins)
"""
import logging
from decimal import Decimal, InvalidOperation

from django.db.models import Q, F
from rest_framework import generics, status
from rest_framework.response import Response

from core.exceptions import NotFoundError
from core.pagination import SortedListMixin
from core.permissions import IsStoreAdmin, IsStoreOwner, OpenReadsMixin
from .models import Category, Product, Store
from .serializers import (
    CategorySerializer,
    ProductSerializer,
    ProductUpdateSerializer,
    BestSellingProductSerializer,
    OtherStoreProductSerializer,
    StoreSerializer,
)
from .services import create_store, weekly_best_sellers

logger = logging.getLogger(__name__)


def _decimal_param(value):
    try:
        value = Decimal(value)
    except (InvalidOperation, TypeError):
        return None
    # NaN and Infinity parse but cannot be bound to a DecimalField lookup
    return value if value.is_finite() else None


def product_queryset():
    return Product.objects.select_related('store').prefetch_related('categories')


# =============================================================================
# Category Views
# =============================================================================

class CategoryListCreateView(OpenReadsMixin, generics.ListCreateAPIView):
    """
    GET: List categories (paginated)
    POST: Create a category (store admins)
    """
    queryset = Category.objects.prefetch_related('products').order_by('name')
    serializer_class = CategorySerializer
    write_permission_classes = [IsStoreAdmin]


class FeaturedCategoryListView(generics.ListAPIView):
    """
    GET: List featured categories (paginated)
    """
    queryset = Category.objects.filter(is_featured=True).order_by('name')
    serializer_class = CategorySerializer


class CategoryDetailView(OpenReadsMixin, generics.RetrieveUpdateDestroyAPIView):
    """
    GET: Retrieve a category
    PUT/PATCH: Update a category (store admins)
    DELETE: Delete a category (store admins)
    """
    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    write_permission_classes = [IsStoreAdmin]


# =============================================================================
# Product Views
# =============================================================================

class ProductListCreateView(OpenReadsMixin, SortedListMixin, generics.ListCreateAPIView):
    """
    GET: List products with filters
    POST: Create a product in the caller's store (store owners)

    Query Parameters (GET):
        - q: Keyword to search in name, description, and category name
        - store: Filter by store ID
        - category: Filter by category ID
        - status: active | inactive | out_of_stock (default: active)
        - featured: true to show only featured products
        - min_price / max_price: Price range
        - sort_by: created_at | price | name | stock
        - order: asc | desc
    """
    serializer_class = ProductSerializer
    write_permission_classes = [IsStoreOwner]
    sort_fields = {
        'created_at': 'created_at',
        'price': 'price',
        'name': 'name',
        'stock': 'stock',
    }

    def get_queryset(self):
        queryset = product_queryset()
        params = self.request.query_params

        status_filter = params.get('status', Product.Status.ACTIVE)
        if status_filter in Product.Status.values:
            queryset = queryset.filter(status=status_filter)

        keyword = params.get('q', '').strip()
        if keyword:
            queryset = queryset.filter(
                Q(name__icontains=keyword) |
                Q(description__icontains=keyword) |
                Q(categories__name__icontains=keyword)
            ).distinct()

        store_id = params.get('store')
        if store_id and store_id.isdigit():
            queryset = queryset.filter(store_id=store_id)

        category_id = params.get('category')
        if category_id and category_id.isdigit():
            queryset = queryset.filter(categories__id=category_id)

        if params.get('featured', '').lower() == 'true':
            queryset = queryset.filter(is_featured=True)

        min_price = _decimal_param(params.get('min_price'))
        if min_price is not None:
            queryset = queryset.filter(price__gte=min_price)

        max_price = _decimal_param(params.get('max_price'))
        if max_price is not None:
            queryset = queryset.filter(price__lte=max_price)

        return self.sort_queryset(queryset)

    def perform_create(self, serializer):
        product = serializer.save(store_id=self.request.user.store_id)
        logger.info(f"Product #{product.pk} '{product.name}' added to store #{product.store_id}")


class ProductDetailView(OpenReadsMixin, generics.RetrieveUpdateAPIView):
    """
    GET: Retrieve a product with its store
    PUT/PATCH: Update a product of the caller's own store (stock is read-only)
    """
    write_permission_classes = [IsStoreOwner]

    def get_queryset(self):
        queryset = product_queryset()
        if self.request.method not in ('GET', 'HEAD', 'OPTIONS'):
            queryset = queryset.filter(store_id=self.request.user.store_id)
        return queryset

    def get_serializer_class(self):
        if self.request.method in ('PUT', 'PATCH'):
            return ProductUpdateSerializer
        return ProductSerializer


class ProductsByCategoryView(SortedListMixin, generics.ListAPIView):
    """
    GET: Active products in a category, addressed by ID or name.
    """
    serializer_class = ProductSerializer
    sort_fields = ProductListCreateView.sort_fields

    def get_queryset(self):
        ref = self.kwargs['category']
        lookup = Q(name__iexact=ref)
        if ref.isdigit():
            lookup |= Q(pk=int(ref))
        category = Category.objects.filter(lookup).first()
        if category is None:
            raise NotFoundError("Category Not Found")

        queryset = product_queryset().filter(
            categories=category,
            status=Product.Status.ACTIVE
        )
        return self.sort_queryset(queryset)


class RelatedProductsView(generics.ListAPIView):
    """
    GET: Up to 10 active products sharing a category with the given product.
    """
    serializer_class = ProductSerializer
    pagination_class = None

    def get_queryset(self):
        try:
            product = Product.objects.get(pk=self.kwargs['pk'])
        except Product.DoesNotExist:
            raise NotFoundError("Product Not Found")

        category_ids = list(product.categories.values_list('id', flat=True))
        return (
            product_queryset()
            .filter(status=Product.Status.ACTIVE, categories__id__in=category_ids)
            .exclude(pk=product.pk)
            .distinct()
            .order_by('-created_at')[:10]
        )


class FeaturedProductsView(SortedListMixin, generics.ListAPIView):
    """
    GET: Active featured products (paginated)
    """
    serializer_class = ProductSerializer
    sort_fields = ProductListCreateView.sort_fields

    def get_queryset(self):
        return self.sort_queryset(
            product_queryset().filter(is_featured=True, status=Product.Status.ACTIVE)
        )


class WeeklyBestSellingView(generics.ListAPIView):
    """
    GET: Active products ranked by units ordered over the last 7 days.
    """
    serializer_class = BestSellingProductSerializer

    def get_queryset(self):
        return weekly_best_sellers().order_by('-units_sold', 'name')


class OtherStoresView(generics.ListAPIView):
    """
    GET: The same SKU offered by other stores, cheapest first.
    """
    serializer_class = OtherStoreProductSerializer

    def get_queryset(self):
        try:
            product = Product.objects.get(pk=self.kwargs['pk'])
        except Product.DoesNotExist:
            raise NotFoundError("Product Not Found")

        return (
            Product.objects.select_related('store')
            .filter(sku=product.sku)
            .exclude(store_id=product.store_id)
            .order_by('price', 'pk')
        )


# =============================================================================
# Store Views
# =============================================================================

class StoreListCreateView(OpenReadsMixin, generics.ListCreateAPIView):
    """
    GET: List active stores
    POST: Create the caller's store (store admins, one store each)

    Request Body (POST):
    {
        "name": "Green Basket",
        "type": "grocery",
        "contact_number": "+1 555 0100",
        "opening_time": "08:00",
        "closing_time": "22:00",
        "description": "Fresh produce daily"
    }
    """
    queryset = Store.objects.filter(is_active=True).prefetch_related('products').order_by('name')
    serializer_class = StoreSerializer
    write_permission_classes = [IsStoreAdmin]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        store = create_store(request.user.account, serializer.validated_data)
        return Response(
            {'message': 'Store created successfully', 'store': StoreSerializer(store).data},
            status=status.HTTP_201_CREATED
        )


class StoreDetailView(generics.RetrieveAPIView):
    """
    GET: Retrieve a store
    """
    queryset = Store.objects.all()
    serializer_class = StoreSerializer


class TopStoresView(generics.ListAPIView):
    """
    GET: Active stores ordered by rating (unrated stores last), 5 per page.
    """
    serializer_class = StoreSerializer

    def get_queryset(self):
        return Store.objects.filter(is_active=True).order_by(
            F('rating').desc(nulls_last=True), 'name'
        )

    def paginate_queryset(self, queryset):
        if 'limit' not in self.request.query_params:
            self.paginator.page_size = 5
        return super().paginate_queryset(queryset)


class StoreProductsView(SortedListMixin, generics.ListAPIView):
    """
    GET: Products of one store, sorted by name by default.
    """
    serializer_class = ProductSerializer
    sort_fields = ProductListCreateView.sort_fields
    default_sort = 'name'
    default_order = 'asc'

    def get_queryset(self):
        if not Store.objects.filter(pk=self.kwargs['pk']).exists():
            raise NotFoundError("Store not found")
        return self.sort_queryset(product_queryset().filter(store_id=self.kwargs['pk']))
