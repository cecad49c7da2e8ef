"""
Cart API Views.

Implements:
- GET /carts/ - Current customer's cart lines with product and store
- POST /carts/ - Add a product to the cart
- PUT /carts/{id}/ - Change quantity (re-snapshots the price)
- DELETE /carts/{id}/ - Remove a line
"""
import logging

from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from catalog.models import Product
from core.exceptions import NotFoundError
from core.permissions import IsCustomer
from .models import CartItem
from .serializers import (
    CartItemSerializer,
    CartItemCreateSerializer,
    CartItemUpdateSerializer,
)

logger = logging.getLogger(__name__)


class CartListCreateView(generics.ListAPIView):
    """
    GET: List cart lines
    POST: Add a cart line

    Request Body (POST):
    {
        "product": 12,
        "quantity": 2
    }
    """
    permission_classes = [IsCustomer]
    serializer_class = CartItemSerializer
    pagination_class = None

    def get_queryset(self):
        return CartItem.objects.filter(customer_id=self.request.user.id).select_related(
            'product__store'
        ).prefetch_related('product__categories')

    def post(self, request):
        serializer = CartItemCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            product = Product.objects.get(pk=serializer.validated_data['product'])
        except Product.DoesNotExist:
            raise NotFoundError("Product not found")

        item = CartItem(
            customer_id=request.user.id,
            product=product,
            quantity=serializer.validated_data['quantity']
        )
        item.reprice()
        item.save()

        logger.debug(f"Customer #{request.user.id} added {item.quantity}x product #{product.pk} to cart")
        return Response(CartItemSerializer(item).data, status=status.HTTP_201_CREATED)


class CartItemDetailView(APIView):
    """
    PUT/PATCH: Update quantity of a cart line
    DELETE: Remove a cart line
    """
    permission_classes = [IsCustomer]

    def get_item(self, request, pk):
        try:
            return CartItem.objects.select_related('product__store').get(
                pk=pk,
                customer_id=request.user.id
            )
        except CartItem.DoesNotExist:
            raise NotFoundError("Cart item not found")

    def put(self, request, pk):
        serializer = CartItemUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        item = self.get_item(request, pk)
        item.quantity = serializer.validated_data['quantity']
        item.reprice()
        item.save(update_fields=['quantity', 'price', 'updated_at'])

        return Response({
            'message': 'Cart item updated successfully',
            'item': CartItemSerializer(item).data
        })

    patch = put

    def delete(self, request, pk):
        self.get_item(request, pk).delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
