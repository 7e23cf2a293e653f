"""
Vehicle refrigerant data API.

Endpoints:
- GET/POST        /api/vehicles/                flat vehicle listing
- GET/PUT/DELETE  /api/vehicles/<id>/
- GET/POST        /api/vehicles/import/          statistics / bulk import
- GET/POST        /api/vehicle-brands/
- GET/PUT/DELETE  /api/vehicle-brands/<id>/
- GET/POST        /api/vehicle-models/
- GET             /api/vehicle-models/search/
- GET             /api/refrigerant-lookup/       bilingual public lookup
"""

import logging

from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAdminUser

from drcarcold.api.params import parse_bool, parse_int
from drcarcold.api.permissions import IsAdminOrReadOnly
from drcarcold.api.responses import error_response, paginated_response, success_response
from drcarcold.api.serializers import (
    VehicleBrandSerializer,
    VehicleModelSerializer,
    VehicleSerializer,
)
from drcarcold.models import VehicleBrand, VehicleModel
from drcarcold.services.vehicle_import import get_vehicle_stats, import_vehicles

logger = logging.getLogger(__name__)

LOOKUP_DEFAULT_LIMIT = 100
LOOKUP_MAX_LIMIT = 500


def _param(request, *names, default=''):
    """First non-empty query parameter among `names` (snake and camel case)."""
    for name in names:
        value = request.query_params.get(name)
        if value:
            return value.strip()
    return default


def _brand_filter(name: str) -> Q:
    return Q(brand__name__icontains=name) | Q(brand__name_en__icontains=name)


# ============================================================
# Flat vehicle records
# ============================================================

@extend_schema(
    tags=['Vehicles'],
    summary='List or create vehicle refrigerant records',
    parameters=[
        OpenApiParameter('brand', str),
        OpenApiParameter('model', str),
        OpenApiParameter('refrigerant', str),
        OpenApiParameter('year', str),
        OpenApiParameter('category', str),
        OpenApiParameter('search', str),
        OpenApiParameter('page', int),
        OpenApiParameter('limit', int),
    ],
    request=VehicleSerializer,
    responses={200: VehicleSerializer(many=True), 201: VehicleSerializer, 400: None},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def vehicle_list(request):
    """
    GET: paginated vehicles plus filter facets (`filters.brands`,
    `filters.refrigerants`, `filters.years`).

    POST: requires model_name, refrigerant_type, fill_amount and either
    brand_id or brand_name.
    """
    if request.method == 'POST':
        serializer = VehicleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        vehicle = serializer.save()
        logger.info(f"Created vehicle {vehicle}")
        return success_response(
            VehicleSerializer(vehicle).data,
            message='Vehicle created',
            status_code=status.HTTP_201_CREATED,
        )

    queryset = VehicleModel.objects.select_related('brand')

    brand = _param(request, 'brand')
    if brand:
        queryset = queryset.filter(_brand_filter(brand))
    model = _param(request, 'model')
    if model:
        queryset = queryset.filter(Q(model_name__icontains=model) | Q(model_name_en__icontains=model))
    refrigerant = _param(request, 'refrigerant')
    if refrigerant:
        queryset = queryset.filter(refrigerant_type__icontains=refrigerant)
    year = _param(request, 'year')
    if year:
        queryset = queryset.filter(year__icontains=year)
    category = _param(request, 'category')
    if category:
        queryset = queryset.filter(brand__category=category)
    search = _param(request, 'search')
    if search:
        queryset = queryset.filter(
            Q(model_name__icontains=search)
            | Q(year__icontains=search)
            | Q(refrigerant_type__icontains=search)
            | Q(engine_type__icontains=search)
            | _brand_filter(search)
        )

    filters = {
        'brands': [
            {'value': b.name, 'label': b.name, 'labelEn': b.name_en, 'category': b.category}
            for b in VehicleBrand.objects.order_by('name')
        ],
        'refrigerants': list(
            VehicleModel.objects.exclude(refrigerant_type='')
            .order_by('refrigerant_type')
            .values_list('refrigerant_type', flat=True)
            .distinct()
        ),
        'years': list(
            VehicleModel.objects.exclude(year='')
            .order_by('-year')
            .values_list('year', flat=True)
            .distinct()
        ),
    }

    queryset = queryset.order_by('brand__name', 'model_name', '-year')
    return paginated_response(request, queryset, VehicleSerializer, filters=filters)


@extend_schema(
    tags=['Vehicles'],
    summary='Retrieve, update or delete a vehicle record',
    request=VehicleSerializer,
    responses={200: VehicleSerializer, 400: None, 404: None},
)
@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminOrReadOnly])
def vehicle_detail(request, pk):
    vehicle = get_object_or_404(VehicleModel.objects.select_related('brand'), pk=pk)

    if request.method == 'GET':
        return success_response(VehicleSerializer(vehicle).data)

    if request.method == 'DELETE':
        vehicle.delete()
        logger.info(f"Deleted vehicle {vehicle}")
        return success_response(None, message='Vehicle deleted')

    serializer = VehicleSerializer(vehicle, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    vehicle = serializer.save()
    return success_response(VehicleSerializer(vehicle).data, message='Vehicle updated')


@extend_schema(
    tags=['Vehicles'],
    summary='Bulk import vehicle records or show import statistics',
    request={
        'application/json': {
            'type': 'object',
            'properties': {
                'data': {
                    'type': 'array',
                    'items': {
                        'type': 'object',
                        'properties': {
                            'brand': {'type': 'string'},
                            'model': {'type': 'string'},
                            'info': {'type': 'string', 'description': 'Engine / variant'},
                            'year': {'type': 'string'},
                            'refrigerant': {'type': 'string'},
                            'amount': {'type': 'string'},
                            'oil': {'type': 'string'},
                            'source': {'type': 'string'},
                        },
                    },
                },
                'clear_existing': {'type': 'boolean', 'default': False},
            },
            'required': ['data'],
        }
    },
    responses={200: None, 400: None},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAdminUser])
def vehicle_import(request):
    """
    POST body:
    {
        "data": [{"brand": "Toyota", "model": "Camry", "refrigerant": "R134a", ...}],
        "clear_existing": false
    }
    """
    if request.method == 'GET':
        return success_response(get_vehicle_stats())

    rows = request.data.get('data')
    if not isinstance(rows, list) or not rows:
        return error_response('data must be a non-empty list', request=request)

    clear_existing = parse_bool(request.data.get('clear_existing'), False)
    stats = import_vehicles(rows, clear_existing=clear_existing)
    return success_response(
        stats.to_dict(),
        message=f'Imported {stats.imported} of {stats.total_attempted} vehicles',
    )


# ============================================================
# Brands and models
# ============================================================

@extend_schema(
    tags=['Vehicles'],
    summary='List or create vehicle brands',
    parameters=[OpenApiParameter('category', str)],
    request=VehicleBrandSerializer,
    responses={200: VehicleBrandSerializer(many=True), 201: VehicleBrandSerializer},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def vehicle_brand_list(request):
    if request.method == 'POST':
        serializer = VehicleBrandSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        brand = serializer.save()
        return success_response(
            VehicleBrandSerializer(brand).data,
            message='Brand created',
            status_code=status.HTTP_201_CREATED,
        )

    queryset = VehicleBrand.objects.annotate(model_count=Count('models')).order_by('order', 'name')
    category = _param(request, 'category')
    if category:
        queryset = queryset.filter(category=category)
    return success_response(VehicleBrandSerializer(queryset, many=True).data)


@extend_schema(
    tags=['Vehicles'],
    summary='Retrieve, update or delete a vehicle brand',
    description='Deleting a brand also deletes its models.',
    request=VehicleBrandSerializer,
    responses={200: VehicleBrandSerializer, 404: None},
)
@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminOrReadOnly])
def vehicle_brand_detail(request, pk):
    brand = get_object_or_404(VehicleBrand.objects.annotate(model_count=Count('models')), pk=pk)

    if request.method == 'GET':
        data = VehicleBrandSerializer(brand).data
        data['models'] = VehicleModelSerializer(
            brand.models.order_by('model_name', '-year'), many=True
        ).data
        return success_response(data)

    if request.method == 'DELETE':
        model_count = brand.model_count
        brand.delete()
        logger.info(f"Deleted brand {brand.name} with {model_count} models")
        return success_response({'deleted_models': model_count}, message='Brand deleted')

    serializer = VehicleBrandSerializer(brand, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    brand = serializer.save()
    return success_response(VehicleBrandSerializer(brand).data, message='Brand updated')


@extend_schema(
    tags=['Vehicles'],
    summary='List or create vehicle models',
    parameters=[OpenApiParameter('brand_id', str), OpenApiParameter('search', str)],
    request=VehicleModelSerializer,
    responses={200: VehicleModelSerializer(many=True), 201: VehicleModelSerializer},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def vehicle_model_list(request):
    if request.method == 'POST':
        serializer = VehicleModelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        model = serializer.save()
        return success_response(
            VehicleModelSerializer(model).data,
            message='Model created',
            status_code=status.HTTP_201_CREATED,
        )

    queryset = VehicleModel.objects.select_related('brand')
    brand_id = _param(request, 'brand_id', 'brandId')
    if brand_id:
        queryset = queryset.filter(brand_id=brand_id)
    search = _param(request, 'search')
    if search:
        queryset = queryset.filter(
            Q(model_name__icontains=search) | Q(model_name_en__icontains=search) | _brand_filter(search)
        )
    queryset = queryset.order_by('brand__name', 'model_name', '-year')
    return paginated_response(request, queryset, VehicleModelSerializer)


@extend_schema(
    tags=['Vehicles'],
    summary='Search vehicle models',
    parameters=[
        OpenApiParameter('brand_id', str),
        OpenApiParameter('model_id', str),
        OpenApiParameter('search', str, description='Model, engine, refrigerant or notes'),
    ],
    responses={200: VehicleModelSerializer(many=True)},
)
@api_view(['GET'])
@permission_classes([AllowAny])
def vehicle_model_search(request):
    queryset = VehicleModel.objects.select_related('brand')

    brand_id = _param(request, 'brand_id', 'brandId')
    if brand_id:
        queryset = queryset.filter(brand_id=brand_id)
    model_id = _param(request, 'model_id', 'modelId')
    if model_id:
        queryset = queryset.filter(pk=model_id)
    search = _param(request, 'search')
    if search:
        queryset = queryset.filter(
            Q(model_name__icontains=search)
            | Q(engine_type__icontains=search)
            | Q(refrigerant_type__icontains=search)
            | Q(notes__icontains=search)
        )

    queryset = queryset.order_by('brand__name', 'model_name')
    return success_response(VehicleModelSerializer(queryset, many=True).data)


# ============================================================
# Public refrigerant lookup
# ============================================================

def _lookup_row(vehicle: VehicleModel, english: bool) -> dict:
    brand = vehicle.brand
    brand_en = brand.name_en or brand.name
    model_en = vehicle.model_name_en or vehicle.model_name
    engine_en = vehicle.engine_type_en or vehicle.engine_type
    return {
        'id': str(vehicle.id),
        'brand': brand_en if english else brand.name,
        'brandCn': brand.name,
        'brandEn': brand_en,
        'brandCategory': brand.category,
        'model': model_en if english else vehicle.model_name,
        'modelCn': vehicle.model_name,
        'modelEn': model_en,
        'year': vehicle.year,
        'engine': engine_en if english else vehicle.engine_type,
        'engineCn': vehicle.engine_type,
        'engineEn': engine_en,
        'refrigerantType': vehicle.refrigerant_type,
        'refrigerantAmount': vehicle.fill_amount,
        'oilType': vehicle.oil_type,
        'oilAmount': vehicle.oil_amount,
        'notes': (vehicle.notes_en or vehicle.notes) if english else vehicle.notes,
        'notesCn': vehicle.notes,
        'notesEn': vehicle.notes_en,
        'language': 'en' if english else 'zh',
        'dataSource': vehicle.data_source,
    }


@extend_schema(
    tags=['Vehicles'],
    summary='Bilingual refrigerant lookup',
    parameters=[
        OpenApiParameter('brand', str, description='Brand name (Chinese or English); alias brandName'),
        OpenApiParameter('modelName', str),
        OpenApiParameter('year', str),
        OpenApiParameter('refrigerant', str),
        OpenApiParameter('category', str),
        OpenApiParameter('search', str),
        OpenApiParameter('language', str, enum=['zh', 'en']),
        OpenApiParameter('limit', int, description='Default 100'),
    ],
    responses={200: None},
)
@api_view(['GET'])
@permission_classes([AllowAny])
def refrigerant_lookup(request):
    """
    Vehicle rows in the requested language plus per-brand model counts.
    """
    english = _param(request, 'language', default='zh') == 'en'
    limit = parse_int(request.query_params.get('limit'), LOOKUP_DEFAULT_LIMIT, 1, LOOKUP_MAX_LIMIT)

    queryset = VehicleModel.objects.select_related('brand')

    brand = _param(request, 'brandName', 'brand')
    if brand:
        queryset = queryset.filter(_brand_filter(brand))
    model_name = _param(request, 'modelName', 'model')
    if model_name:
        queryset = queryset.filter(
            Q(model_name__icontains=model_name) | Q(model_name_en__icontains=model_name)
        )
    year = _param(request, 'year')
    if year:
        queryset = queryset.filter(year__icontains=year)
    refrigerant = _param(request, 'refrigerant')
    if refrigerant:
        queryset = queryset.filter(refrigerant_type__icontains=refrigerant)
    category = _param(request, 'category')
    if category:
        queryset = queryset.filter(brand__category=category)
    search = _param(request, 'search')
    if search:
        queryset = queryset.filter(
            Q(model_name__icontains=search)
            | Q(model_name_en__icontains=search)
            | Q(year__icontains=search)
            | Q(engine_type__icontains=search)
            | Q(engine_type_en__icontains=search)
            | Q(refrigerant_type__icontains=search)
            | Q(notes__icontains=search)
            | Q(notes_en__icontains=search)
            | _brand_filter(search)
        )

    vehicles = queryset.order_by('brand__name', 'model_name', '-year')[:limit]
    rows = [_lookup_row(v, english) for v in vehicles]

    brands = VehicleBrand.objects.annotate(model_count=Count('models')).order_by('name')
    if category:
        brands = brands.filter(category=category)

    return success_response(
        rows,
        total=len(rows),
        brands=[
            {
                'id': str(b.id),
                'name': b.name,
                'nameEn': b.name_en,
                'category': b.category,
                'modelCount': b.model_count,
            }
            for b in brands
        ],
    )
