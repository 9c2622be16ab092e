from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, parser_classes, permission_classes, throttle_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from clinic.models import MedicalDocument
from clinic.permissions import IsOnboarded
from clinic.serializers.documents import (
    DocumentListQuerySerializer,
    DocumentSerializer,
    DocumentStatsQuerySerializer,
    DocumentUpdateSerializer,
    DocumentUploadSerializer,
)
from clinic.services import documents as svc


class UploadThrottle(UserRateThrottle):
    scope = 'uploads'


def _serialize(d: MedicalDocument) -> dict:
    return {
        'id': d.id,
        'uuid': str(d.uuid),
        'patient_id': d.patient_id,
        'uploaded_by': d.uploaded_by,
        'file_name': d.file_name,
        'file_url': d.file_url,
        'file_size': d.file_size,
        'file_type': d.file_type,
        'file_extension': d.file_extension,
        'document_type': d.document_type,
        'category': d.category,
        'description': d.description,
        'tags': d.tags,
        'is_active': d.is_active,
        'uploaded_at': d.uploaded_at.isoformat() if d.uploaded_at else None,
        'updated_at': d.updated_at.isoformat() if d.updated_at else None,
    }


def _list_response(items, pagination) -> Response:
    return Response({'success': True, 'count': len(items), 'pagination': pagination,
                     'data': [_serialize(d) for d in items]})


@api_view(['GET', 'POST'])
@permission_classes([IsOnboarded])
def documents(request):
    if request.method == 'GET':
        q = DocumentListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        return _list_response(*svc.list_documents(**q.validated_data))
    s = DocumentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    doc = svc.create_document(s.validated_data, actor_id=request.user.external_id)
    return Response({'success': True, 'message': 'Document created successfully', 'data': _serialize(doc)},
                    status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsOnboarded])
@parser_classes([MultiPartParser, FormParser])
@throttle_classes([UploadThrottle])
def upload_document(request):
    s = DocumentUploadSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = dict(s.validated_data)
    upload = data.pop('file')
    doc = svc.upload_document(upload, data, actor_id=request.user.external_id)
    return Response({'success': True, 'message': 'Document uploaded successfully', 'data': _serialize(doc)},
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsOnboarded])
def document_detail(request, pk: int):
    doc = svc.get_document(pk)
    if request.method == 'GET':
        return Response({'success': True, 'data': _serialize(doc)})
    if request.method == 'DELETE':
        svc.soft_delete(doc, actor_id=request.user.external_id)
        return Response({'success': True, 'message': 'Document deleted successfully', 'data': {}})
    s = DocumentUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    doc = svc.update_document(doc, s.validated_data, actor_id=request.user.external_id)
    return Response({'success': True, 'message': 'Document updated successfully', 'data': _serialize(doc)})


@api_view(['GET'])
@permission_classes([IsOnboarded])
def documents_for_patient(request, patient_id: str):
    return _list_response(*svc.list_documents(patient_id=patient_id, page=1, limit=200))


@api_view(['GET'])
@permission_classes([IsOnboarded])
def documents_by_uploader(request, uploader_id: str):
    return _list_response(*svc.list_documents(uploaded_by=uploader_id, page=1, limit=200))


@api_view(['GET'])
@permission_classes([IsOnboarded])
def document_stats(request):
    q = DocumentStatsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response({'success': True, 'data': svc.stats_overview(**q.validated_data)})
