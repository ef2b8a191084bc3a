"""
Patient intake views.

Reception registers patients and records their payment; the assignment
to a department and everything after it goes through the workflow engine.
"""
from __future__ import annotations

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from workflow.permissions import IsIntakeRole, IsStaff
from workflow.serializers.patient import (
    AssignDepartmentSerializer,
    AttachmentSerializer,
    HistorySerializer,
    PatientListQuerySerializer,
    PatientWriteSerializer,
)
from workflow.services import patients as patient_service
from workflow.services import storage
from workflow.services.formatting import format_patient
from workflow.services.workflow import get_engine


def _require_intake(request):
    if not IsIntakeRole().has_permission(request, None):
        raise PermissionDenied('Reception or admin only')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaff])
def patients(request):
    if request.method == 'POST':
        _require_intake(request)
        s = PatientWriteSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        patient = patient_service.create_patient(request.user, s.to_model_fields())
        return Response(format_patient(patient), status=status.HTTP_201_CREATED)

    q = PatientListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    items, total = patient_service.search_patients(
        vd.get('q'), status=vd.get('status'), page=vd.get('page') or 1, page_size=vd.get('pageSize') or 50,
    )
    return Response({'items': [format_patient(p) for p in items], 'total': total})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaff])
def patient_detail(request, patient_id: int):
    if request.method == 'DELETE':
        _require_intake(request)
        patient_service.delete_patient(patient_id, request.user)
        return Response({'ok': True})

    patient = patient_service.get_patient(patient_id)
    if request.method == 'GET':
        return Response(format_patient(patient))

    s = PatientWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    patient = patient_service.update_patient(patient.id, s.to_model_fields(), request.user)
    return Response(format_patient(patient))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsIntakeRole])
def record_payment(request, patient_id: int):
    patient = get_engine().record_payment(patient_id, actor=request.user)
    return Response({'ok': True, 'message': 'Payment recorded', 'patient': format_patient(patient)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsIntakeRole])
def assign_department(request, patient_id: int):
    s = AssignDepartmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = get_engine().assign_department(
        patient_id,
        s.validated_data['departmentId'],
        s.validated_data.get('departmentName') or None,
        actor=request.user,
    )
    return Response({'ok': True, 'message': 'Patient assigned to department', 'patient': format_patient(patient)})


@api_view(['PATCH', 'PUT'])
@permission_classes([IsAuthenticated, IsStaff])
def update_history(request, patient_id: int):
    patient = patient_service.get_patient(patient_id)
    patient_service.ensure_department_access(request.user, patient)
    s = HistorySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    patient = patient_service.update_history(patient, {
        'clinical_history': vd.get('clinicalHistory'),
        'previous_injury': vd.get('previousInjury'),
        'previous_surgery': vd.get('previousSurgery'),
    }, request.user)
    return Response({'ok': True, 'patient': format_patient(patient)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaff])
def add_attachment(request, patient_id: int):
    patient = patient_service.get_patient(patient_id)
    patient_service.ensure_department_access(request.user, patient)
    s = AttachmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = patient_service.add_attachment(
        patient, s.validated_data.get('fileName', ''), s.validated_data['fileUrl'], request.user,
    )
    return Response({'ok': True, 'attachments': patient.attachments})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsIntakeRole])
@parser_classes([MultiPartParser, FormParser])
def upload_govt_id(request, patient_id: int):
    patient = patient_service.get_patient(patient_id)
    descriptor = storage.store(
        request.FILES.get('file'), settings.GOVT_ID_UPLOAD_FOLDER, settings.GOVT_ID_UPLOAD_EXTENSIONS,
    )
    patient = patient_service.set_govt_id_file(patient, descriptor, request.user)
    return Response({'ok': True, 'fileUrl': descriptor['url'], 'patient': format_patient(patient)})
