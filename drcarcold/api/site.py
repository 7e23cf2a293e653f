"""
Site content API: banners, company info, settings, contact form and uploads.

Endpoints:
- GET/POST        /api/banners/
- GET/PUT/DELETE  /api/banners/<id>/
- GET/PUT         /api/company-info/
- GET/POST        /api/settings/
- POST            /api/contact/          public contact form (throttled)
- GET             /api/contacts/
- GET/PUT/DELETE  /api/contacts/<id>/
- POST            /api/upload/           multipart media upload
"""

import logging

from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, parser_classes, permission_classes, throttle_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAdminUser

from drcarcold.api.params import parse_bool, parse_int
from drcarcold.api.permissions import IsAdminOrReadOnly, is_admin
from drcarcold.api.responses import error_response, paginated_response, success_response
from drcarcold.api.serializers import (
    BannerSerializer,
    CompanyInfoSerializer,
    ContactCreateSerializer,
    ContactSerializer,
)
from drcarcold.api.throttling import ContactFormThrottle
from drcarcold.models import Banner, CompanyInfo, Contact, ContactStatus, Setting
from drcarcold.services.media import UPLOAD_TYPES, MediaValidationError, save_upload, validate_upload
from drcarcold.services.notifications import notify_new_contact
from drcarcold.services.settings_store import coerce_value, get_settings_store

logger = logging.getLogger(__name__)


def _client_ip(request) -> str:
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('HTTP_X_REAL_IP') or request.META.get('REMOTE_ADDR', '')


# ============================================================
# Banners
# ============================================================

@extend_schema(
    tags=['Banners'],
    summary='List or create banners',
    parameters=[OpenApiParameter('position', str), OpenApiParameter('active', bool)],
    request=BannerSerializer,
    responses={200: BannerSerializer(many=True), 201: BannerSerializer},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def banner_list(request):
    """
    GET: banners ordered by `order` then newest. The public only sees active
    banners. POST: media_type is detected from the file name when omitted.
    """
    if request.method == 'POST':
        serializer = BannerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        banner = serializer.save()
        return success_response(
            BannerSerializer(banner).data,
            message='Banner created',
            status_code=status.HTTP_201_CREATED,
        )

    queryset = Banner.objects.order_by('order', '-created_at')
    position = request.query_params.get('position')
    if position:
        queryset = queryset.filter(position=position)

    active = parse_bool(request.query_params.get('active'))
    if active is None and not is_admin(request):
        active = True
    if active is not None:
        queryset = queryset.filter(is_active=active)

    return success_response(BannerSerializer(queryset, many=True).data)


@extend_schema(
    tags=['Banners'],
    summary='Retrieve, update or delete a banner',
    request=BannerSerializer,
    responses={200: BannerSerializer, 404: None},
)
@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminOrReadOnly])
def banner_detail(request, pk):
    banner = get_object_or_404(Banner, pk=pk)

    if request.method == 'GET':
        return success_response(BannerSerializer(banner).data)

    if request.method == 'DELETE':
        banner.delete()
        return success_response(None, message='Banner deleted')

    serializer = BannerSerializer(banner, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    banner = serializer.save()
    return success_response(BannerSerializer(banner).data, message='Banner updated')


# ============================================================
# Company info and settings
# ============================================================

@extend_schema(
    tags=['Site'],
    summary='Get or update company information',
    request=CompanyInfoSerializer,
    responses={200: CompanyInfoSerializer},
)
@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAdminOrReadOnly])
def company_info(request):
    info = CompanyInfo.load()

    if request.method == 'GET':
        return success_response(CompanyInfoSerializer(info).data)

    serializer = CompanyInfoSerializer(info, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    info = serializer.save()
    logger.info("Company info updated")
    return success_response(CompanyInfoSerializer(info).data, message='Company info updated')


@extend_schema(
    tags=['Site'],
    summary='Read or write runtime settings',
    parameters=[OpenApiParameter('key', str, description='Return a single setting')],
    request={
        'application/json': {
            'oneOf': [
                {
                    'type': 'object',
                    'properties': {'key': {'type': 'string'}, 'value': {}},
                    'required': ['key', 'value'],
                },
                {'type': 'object', 'additionalProperties': True},
            ]
        }
    },
    responses={200: None, 400: None, 404: None},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAdminUser])
def settings_view(request):
    """
    GET ?key=: one setting as {key, value, description}.
    GET: all settings as a dict, with booleans and numbers coerced.

    POST {"key": "...", "value": ...}: upsert one setting.
    POST {"a": 1, "b": true}: upsert several settings.
    Values are stored as strings.
    """
    store = get_settings_store()

    if request.method == 'GET':
        key = request.query_params.get('key')
        if key:
            setting = Setting.objects.filter(key=key).first()
            if setting is None:
                return error_response(f'Setting {key} not found', status.HTTP_404_NOT_FOUND, request=request)
            return success_response({
                'key': setting.key,
                'value': coerce_value(setting.value),
                'description': setting.description,
            })
        return success_response(store.get_all())

    data = request.data
    if not isinstance(data, dict) or not data:
        return error_response('Expected a JSON object', request=request)

    if 'key' in data and 'value' in data:
        key = str(data['key']).strip()
        if not key:
            return error_response('key must not be empty', request=request)
        setting = store.set(key, data['value'], description=data.get('description'))
        logger.info(f"Setting {key} updated")
        return success_response({'key': setting.key, 'value': coerce_value(setting.value)}, message='Setting saved')

    updated = store.set_many({str(k): v for k, v in data.items()})
    logger.info(f"{updated} settings updated")
    return success_response({'updated': updated}, message=f'{updated} settings saved')


# ============================================================
# Contact form
# ============================================================

@extend_schema(
    tags=['Contact'],
    summary='Submit the public contact form',
    request=ContactCreateSerializer,
    responses={201: None, 400: None, 429: None},
)
@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([ContactFormThrottle])
def contact_submit(request):
    """
    Stores the submission, emails the site recipient and pings Telegram.
    Delivery failures are logged; the submission is kept either way.
    """
    serializer = ContactCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    contact = serializer.save(
        ip_address=_client_ip(request)[:100],
        user_agent=request.META.get('HTTP_USER_AGENT', '')[:500],
    )
    logger.info(f"Contact form submitted by {contact.email}")

    notify_new_contact(contact)

    return success_response(
        {'id': str(contact.id)},
        message='感謝您的來信，我們會盡快回覆您！',
        status_code=status.HTTP_201_CREATED,
    )


@extend_schema(
    tags=['Contact'],
    summary='List contact submissions',
    parameters=[
        OpenApiParameter('status', str, enum=[s.value for s in ContactStatus]),
        OpenApiParameter('priority', int),
        OpenApiParameter('is_read', bool),
        OpenApiParameter('search', str),
        OpenApiParameter('page', int),
        OpenApiParameter('limit', int),
    ],
    responses={200: ContactSerializer(many=True)},
)
@api_view(['GET'])
@permission_classes([IsAdminUser])
def contact_list(request):
    queryset = Contact.objects.order_by('-priority', '-created_at')

    status_filter = request.query_params.get('status')
    if status_filter:
        queryset = queryset.filter(status=status_filter)
    priority = request.query_params.get('priority')
    if priority:
        queryset = queryset.filter(priority=parse_int(priority, 2, 1, 4))
    is_read = parse_bool(request.query_params.get('is_read'))
    if is_read is not None:
        queryset = queryset.filter(is_read=is_read)
    search = request.query_params.get('search', '').strip()
    if search:
        queryset = queryset.filter(
            Q(name__icontains=search)
            | Q(email__icontains=search)
            | Q(subject__icontains=search)
            | Q(message__icontains=search)
            | Q(company__icontains=search)
        )

    counts = dict(Contact.objects.order_by().values_list('status').annotate(count=Count('id')))
    stats = {choice.value: counts.get(choice.value, 0) for choice in ContactStatus}
    stats['total'] = sum(counts.values())
    stats['unread'] = Contact.objects.filter(is_read=False).count()

    return paginated_response(request, queryset, ContactSerializer, stats=stats)


@extend_schema(
    tags=['Contact'],
    summary='Retrieve, update or delete a contact submission',
    description='Retrieving a submission marks it as read.',
    request=ContactSerializer,
    responses={200: ContactSerializer, 404: None},
)
@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminUser])
def contact_detail(request, pk):
    contact = get_object_or_404(Contact, pk=pk)

    if request.method == 'GET':
        if not contact.is_read:
            contact.is_read = True
            contact.save(update_fields=['is_read'])
        return success_response(ContactSerializer(contact).data)

    if request.method == 'DELETE':
        contact.delete()
        return success_response(None, message='Contact deleted')

    serializer = ContactSerializer(contact, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    contact = serializer.save()
    return success_response(ContactSerializer(contact).data, message='Contact updated')


# ============================================================
# Uploads
# ============================================================

@extend_schema(
    tags=['Uploads'],
    summary='Upload images, GIFs or videos',
    request={
        'multipart/form-data': {
            'type': 'object',
            'properties': {
                'files[]': {'type': 'array', 'items': {'type': 'string', 'format': 'binary'}},
                'type': {'type': 'string', 'enum': list(UPLOAD_TYPES)},
                'accept_video': {'type': 'boolean', 'default': True},
                'accept_gif': {'type': 'boolean', 'default': True},
            },
            'required': ['files[]', 'type'],
        }
    },
    responses={200: None, 400: None},
)
@api_view(['POST'])
@permission_classes([IsAdminUser])
@parser_classes([MultiPartParser, FormParser])
def upload_files(request):
    """
    Each file is validated on its own; rejected files are reported in
    `errors` while the rest are stored. 400 only when nothing was stored.
    """
    upload_type = request.data.get('type', '')
    if upload_type not in UPLOAD_TYPES:
        return error_response(
            f"type must be one of {', '.join(UPLOAD_TYPES)}",
            request=request,
        )

    files = request.FILES.getlist('files[]') or request.FILES.getlist('files') or request.FILES.getlist('file')
    if not files:
        return error_response('No files uploaded', request=request)

    accept_video = parse_bool(request.data.get('accept_video'), True)
    accept_gif = parse_bool(request.data.get('accept_gif'), True)

    stored = []
    errors = []
    for uploaded in files:
        try:
            media_type = validate_upload(uploaded, accept_video=accept_video, accept_gif=accept_gif)
            stored.append(save_upload(uploaded, upload_type, media_type).to_dict())
        except MediaValidationError as e:
            errors.append({'file': uploaded.name, 'error': str(e)})
        except OSError as e:
            logger.error(f"Could not store upload {uploaded.name}: {e}")
            errors.append({'file': uploaded.name, 'error': 'Could not store file'})

    if not stored:
        return error_response(
            'No files were uploaded',
            request=request,
            details=errors,
        )

    return success_response(
        {'files': stored, 'errors': errors},
        message=f'{len(stored)} of {len(files)} files uploaded',
    )
