"""
Catalogue API: products and categories.

Endpoints:
- GET/POST        /api/products/
- GET/PUT/DELETE  /api/products/<id>/
- GET/POST        /api/categories/
- GET/PUT/DELETE  /api/categories/<id>/

Reads are public; writes need a staff user.
"""

import logging

from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes

from drcarcold.api.params import parse_bool
from drcarcold.api.permissions import IsAdminOrReadOnly, is_admin
from drcarcold.api.responses import error_response, paginated_response, success_response
from drcarcold.api.serializers import CategorySerializer, ProductSerializer
from drcarcold.models import Category, Product

logger = logging.getLogger(__name__)


# ============================================================
# Products
# ============================================================

@extend_schema(
    tags=['Products'],
    summary='List or create products',
    parameters=[
        OpenApiParameter('category', str, description='Category slug'),
        OpenApiParameter('active', bool),
        OpenApiParameter('featured', bool),
        OpenApiParameter('search', str, description='Matches name, English name or description'),
        OpenApiParameter('page', int),
        OpenApiParameter('limit', int, description='1-100, default 20'),
    ],
    request=ProductSerializer,
    responses={200: ProductSerializer(many=True), 201: ProductSerializer, 400: None},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def product_list(request):
    """
    GET: paginated products, newest first. Anonymous users only see active
    products unless `active` is given.

    POST: create a product. The slug defaults to one derived from the name;
    a slug already in use is rejected with 400.
    """
    if request.method == 'POST':
        serializer = ProductSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = serializer.save()
        logger.info(f"Created product {product.slug}")
        return success_response(
            ProductSerializer(product).data,
            message='Product created',
            status_code=status.HTTP_201_CREATED,
        )

    queryset = Product.objects.select_related('category').order_by('-created_at')

    category = request.query_params.get('category')
    if category:
        queryset = queryset.filter(category__slug=category)

    active = parse_bool(request.query_params.get('active'))
    if active is None and not is_admin(request):
        active = True
    if active is not None:
        queryset = queryset.filter(is_active=active)

    featured = parse_bool(request.query_params.get('featured'))
    if featured is not None:
        queryset = queryset.filter(is_featured=featured)

    search = request.query_params.get('search', '').strip()
    if search:
        queryset = queryset.filter(
            Q(name__icontains=search)
            | Q(name_en__icontains=search)
            | Q(description__icontains=search)
        )

    return paginated_response(request, queryset, ProductSerializer)


@extend_schema(
    tags=['Products'],
    summary='Retrieve, update or delete a product',
    request=ProductSerializer,
    responses={200: ProductSerializer, 400: None, 404: None},
)
@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminOrReadOnly])
def product_detail(request, pk):
    product = get_object_or_404(Product.objects.select_related('category'), pk=pk)

    if request.method == 'GET':
        return success_response(ProductSerializer(product).data)

    if request.method == 'DELETE':
        product.delete()
        logger.info(f"Deleted product {product.slug}")
        return success_response(None, message='Product deleted')

    serializer = ProductSerializer(product, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    product = serializer.save()
    return success_response(ProductSerializer(product).data, message='Product updated')


# ============================================================
# Categories
# ============================================================

@extend_schema(
    tags=['Categories'],
    summary='List or create categories',
    request=CategorySerializer,
    responses={200: CategorySerializer(many=True), 201: CategorySerializer, 400: None},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def category_list(request):
    """
    GET: all categories ordered by name, each with its `product_count`.
    POST: create a category; duplicate slugs are rejected with 400.
    """
    if request.method == 'POST':
        serializer = CategorySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        category = serializer.save()
        logger.info(f"Created category {category.slug}")
        return success_response(
            CategorySerializer(category).data,
            message='Category created',
            status_code=status.HTTP_201_CREATED,
        )

    categories = Category.objects.annotate(product_count=Count('products')).order_by('name')
    return success_response(CategorySerializer(categories, many=True).data)


@extend_schema(
    tags=['Categories'],
    summary='Retrieve, update or delete a category',
    request=CategorySerializer,
    responses={200: CategorySerializer, 400: None, 404: None},
)
@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminOrReadOnly])
def category_detail(request, pk):
    """DELETE is refused with 400 while products still use the category."""
    category = get_object_or_404(
        Category.objects.annotate(product_count=Count('products')), pk=pk
    )

    if request.method == 'GET':
        return success_response(CategorySerializer(category).data)

    if request.method == 'DELETE':
        if category.product_count:
            return error_response(
                f'Category still has {category.product_count} products',
                status.HTTP_400_BAD_REQUEST,
                request=request,
                message='Move or delete the products first',
            )
        category.delete()
        logger.info(f"Deleted category {category.slug}")
        return success_response(None, message='Category deleted')

    serializer = CategorySerializer(category, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    category = serializer.save()
    return success_response(CategorySerializer(category).data, message='Category updated')
