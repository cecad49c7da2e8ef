"""
Serializers for catalog models.
Provides data validation and JSON conversion for API endpoints.
"""
from rest_framework import serializers
from .models import Category, Product, Store


class CategorySerializer(serializers.ModelSerializer):
    """Serializer for Category model."""
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = [
            'id', 'name', 'description', 'image', 'is_featured',
            'product_count', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def get_product_count(self, obj):
        """Get count of products in this category."""
        return obj.products.count()


class CategoryMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for nested category representation."""
    class Meta:
        model = Category
        fields = ['id', 'name']


class StoreSerializer(serializers.ModelSerializer):
    """Serializer for Store model."""
    owner_id = serializers.IntegerField(read_only=True)
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = Store
        fields = [
            'id', 'name', 'type', 'location', 'opening_time', 'closing_time',
            'contact_number', 'rating', 'description', 'image', 'banner',
            'owner_id', 'store_code', 'is_active', 'product_count',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'rating', 'store_code', 'is_active', 'created_at', 'updated_at']
        # Duplicate names are reported as 409 by the service layer
        extra_kwargs = {'name': {'validators': []}}

    def get_product_count(self, obj):
        """Get count of products this store sells."""
        return obj.products.count()


class StoreMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for nested store representation."""
    class Meta:
        model = Store
        fields = ['id', 'name', 'type', 'location', 'contact_number']


class ProductSerializer(serializers.ModelSerializer):
    """Serializer for Product model with nested store and categories."""
    store = StoreMinimalSerializer(read_only=True)
    categories = CategoryMinimalSerializer(many=True, read_only=True)
    category_ids = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(),
        source='categories',
        many=True,
        write_only=True,
        required=False
    )

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'description', 'store', 'categories', 'category_ids',
            'price', 'discount_percentage', 'stock', 'sku', 'weight',
            'is_featured', 'image', 'status', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']


class ProductUpdateSerializer(ProductSerializer):
    """Stock is set once at creation and only decremented by orders."""
    class Meta(ProductSerializer.Meta):
        read_only_fields = ['id', 'stock', 'created_at', 'updated_at']


class ProductMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for nested representations."""
    class Meta:
        model = Product
        fields = ['id', 'name', 'price', 'image']


class BestSellingProductSerializer(serializers.ModelSerializer):
    """Product with the number of units ordered in the reporting window."""
    units_sold = serializers.IntegerField(read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'price', 'image', 'status', 'units_sold']


class OtherStoreProductSerializer(serializers.ModelSerializer):
    """Same SKU offered by another store."""
    store = StoreMinimalSerializer(read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'price', 'stock', 'store']
