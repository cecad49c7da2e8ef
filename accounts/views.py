"""
Account API Views.

Implements, for each role (customer, store admin, courier):
- POST register/ - Create account, returns bearer token
- POST login/ - Exchange credentials for a bearer token (rate limited)
- GET me/ - Current account

Plus:
- PUT /user/ - Customer profile update
- GET /admin/auth/store/me/ - Store owned by the current store admin
"""

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from catalog.serializers import StoreSerializer
from core.authentication import issue_token
from core.exceptions import NotFoundError
from core.permissions import IsCustomer, IsStoreAdmin, IsCourier
from core.rate_limiting import rate_limit
from .models import Customer, StoreAdmin, Courier
from .serializers import (
    RegisterSerializer,
    CourierRegisterSerializer,
    LoginSerializer,
    CustomerSerializer,
    StoreAdminSerializer,
    CourierSerializer,
)
from .services import register_account, authenticate_account


class RegisterView(APIView):
    """
    POST: Register a new account.

    Request Body:
    {
        "email": "jane@example.com",
        "password": "secret1",
        "full_name": "Jane Doe"
    }

    Returns:
        - 201: {"token": ..., "user": {...}}
        - 400: Validation error
        - 409: Email already registered
    """
    model = None
    register_serializer_class = RegisterSerializer
    account_serializer_class = None

    def post(self, request):
        serializer = self.register_serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)

        account = register_account(self.model, serializer.validated_data)
        return Response(
            {
                'token': issue_token(account),
                'user': self.account_serializer_class(account).data,
            },
            status=status.HTTP_201_CREATED
        )


class LoginView(APIView):
    model = None
    account_serializer_class = None

    def post(self, request):
        return self.login(request)

    def login(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        account = authenticate_account(
            self.model,
            serializer.validated_data['email'],
            serializer.validated_data['password'],
        )
        return Response({
            'token': issue_token(account),
            'user': self.account_serializer_class(account).data,
        })


class MeView(APIView):
    account_serializer_class = None

    def get(self, request):
        return Response({'user': self.account_serializer_class(request.user.account).data})


# =============================================================================
# Customer
# =============================================================================

class CustomerRegisterView(RegisterView):
    model = Customer
    account_serializer_class = CustomerSerializer


class CustomerLoginView(LoginView):
    model = Customer
    account_serializer_class = CustomerSerializer

    @rate_limit('customer-login', max_requests=10, window_seconds=60)
    def post(self, request):
        return self.login(request)


class CustomerMeView(MeView):
    permission_classes = [IsCustomer]
    account_serializer_class = CustomerSerializer


class CustomerProfileView(APIView):
    """
    PUT/PATCH: Update the current customer's name, phone or address.
    """
    permission_classes = [IsCustomer]

    def put(self, request):
        serializer = CustomerSerializer(request.user.account, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({'message': 'User updated successfully', 'user': serializer.data})

    patch = put


# =============================================================================
# Store admin
# =============================================================================

class StoreAdminRegisterView(RegisterView):
    model = StoreAdmin
    account_serializer_class = StoreAdminSerializer


class StoreAdminLoginView(LoginView):
    model = StoreAdmin
    account_serializer_class = StoreAdminSerializer

    @rate_limit('admin-login', max_requests=10, window_seconds=60)
    def post(self, request):
        return self.login(request)


class StoreAdminMeView(MeView):
    permission_classes = [IsStoreAdmin]
    account_serializer_class = StoreAdminSerializer


class StoreAdminStoreView(APIView):
    """
    GET: Store owned by the current store admin.
    """
    permission_classes = [IsStoreAdmin]

    def get(self, request):
        store = getattr(request.user.account, 'store', None)
        if store is None:
            raise NotFoundError("Store not found")
        return Response({'store': StoreSerializer(store).data})


# =============================================================================
# Courier
# =============================================================================

class CourierRegisterView(RegisterView):
    model = Courier
    register_serializer_class = CourierRegisterSerializer
    account_serializer_class = CourierSerializer


class CourierLoginView(LoginView):
    model = Courier
    account_serializer_class = CourierSerializer

    @rate_limit('courier-login', max_requests=10, window_seconds=60)
    def post(self, request):
        return self.login(request)


class CourierMeView(MeView):
    permission_classes = [IsCourier]
    account_serializer_class = CourierSerializer
