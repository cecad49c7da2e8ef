"""
URL routing for catalog API endpoints.
"""
from django.urls import path
from . import views

app_name = 'catalog'

urlpatterns = [
    # Categories
    path('categories/', views.CategoryListCreateView.as_view(), name='category-list'),
    path('categories/featured/', views.FeaturedCategoryListView.as_view(), name='category-featured'),
    path('categories/<int:pk>/', views.CategoryDetailView.as_view(), name='category-detail'),

    # Products
    path('products/', views.ProductListCreateView.as_view(), name='product-list'),
    path('products/featured/', views.FeaturedProductsView.as_view(), name='product-featured'),
    path('products/weekly-best-selling/', views.WeeklyBestSellingView.as_view(), name='product-best-selling'),
    path('products/category/<str:category>/', views.ProductsByCategoryView.as_view(), name='product-by-category'),
    path('products/<int:pk>/', views.ProductDetailView.as_view(), name='product-detail'),
    path('products/<int:pk>/related/', views.RelatedProductsView.as_view(), name='product-related'),
    path('products/<int:pk>/other-stores/', views.OtherStoresView.as_view(), name='product-other-stores'),

    # Stores
    path('stores/', views.StoreListCreateView.as_view(), name='store-list'),
    path('stores/top/', views.TopStoresView.as_view(), name='store-top'),
    path('stores/<int:pk>/', views.StoreDetailView.as_view(), name='store-detail'),
    path('stores/<int:pk>/products/', views.StoreProductsView.as_view(), name='store-products'),
]
