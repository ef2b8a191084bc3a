"""
Report views: clinical editing, file upload and the status lifecycle.

Department users only see and touch reports of their own department;
approval and the status override are reserved to administrators.
"""
from __future__ import annotations

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from workflow.exceptions import NotFound, WorkflowError
from workflow.models import Report
from workflow.permissions import IsAdminRole, IsDepartmentRole, IsStaff, ensure_department_scope, is_admin
from workflow.serializers.workflow import (
    ClinicalFieldsSerializer,
    ReportCreateSerializer,
    ReportListQuerySerializer,
    StatusChangeSerializer,
    clinical_fields,
)
from workflow.services import storage
from workflow.services.formatting import format_report
from workflow.services.workflow import get_engine


def _get_report(report_id) -> Report:
    report = Report.objects.select_related('patient').filter(id=report_id).first()
    if not report:
        raise NotFound(f'Report {report_id} not found')
    return report


def _scoped(request, report_id) -> Report:
    report = _get_report(report_id)
    ensure_department_scope(request.user, report.department_id)
    return report


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def list_reports(request):
    q = ReportListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = Report.objects.select_related('patient')
    if request.user.role == 'department_user':
        qs = qs.filter(department_id=request.user.department_id)
    elif vd.get('department'):
        qs = qs.filter(department_id=vd['department'])
    if vd.get('status'):
        qs = qs.filter(status=vd['status'])
    if vd.get('patient'):
        qs = qs.filter(patient_id=vd['patient'])
    if vd.get('source'):
        qs = qs.filter(source=vd['source'])
    return Response([format_report(r) for r in qs.order_by('-created_at', '-id')[:200]])


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDepartmentRole])
def reports_by_department(request, dept_id: int):
    ensure_department_scope(request.user, dept_id)
    qs = Report.objects.select_related('patient').filter(department_id=dept_id).order_by('-created_at')
    return Response([format_report(r) for r in qs[:200]])


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDepartmentRole])
def create_report(request):
    s = ReportCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    ensure_department_scope(request.user, vd['department'])
    report = get_engine().create_report(
        vd['patientId'], vd['department'],
        case_id=vd.get('caseId'),
        fields=clinical_fields(vd),
        actor=request.user,
    )
    return Response(format_report(report), status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaff])
def report_detail(request, report_id: int):
    report = _scoped(request, report_id)
    if request.method == 'GET':
        return Response(format_report(report))

    if not IsDepartmentRole().has_permission(request, None):
        raise PermissionDenied('Department or admin only')
    if request.method == 'DELETE':
        get_engine().delete_report(report.id, actor=request.user)
        return Response({'ok': True, 'message': 'Report deleted successfully'})

    s = ClinicalFieldsSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    report = get_engine().update_report(report.id, clinical_fields(s.validated_data), actor=request.user)
    return Response(format_report(report))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDepartmentRole])
@parser_classes([MultiPartParser, FormParser])
def upload_report_file(request, report_id: int):
    report = _scoped(request, report_id)
    descriptor = storage.store(
        request.FILES.get('file'), settings.REPORT_UPLOAD_FOLDER, settings.REPORT_UPLOAD_EXTENSIONS,
    )
    try:
        report = get_engine().upload_report_file(report.id, descriptor, actor=request.user)
    except WorkflowError:
        storage.remove(descriptor['storageId'])
        raise
    return Response(format_report(report))


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated, IsDepartmentRole])
def change_status(request, report_id: int):
    report = _scoped(request, report_id)
    s = StatusChangeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    override = s.validated_data['override']
    if override and not is_admin(request.user):
        raise PermissionDenied('Only administrators may override the report lifecycle')
    report = get_engine().change_report_status(
        report.id, s.validated_data['status'], actor=request.user, override=override,
    )
    return Response(format_report(report))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def approve_report(request, report_id: int):
    report = get_engine().approve_report(_get_report(report_id).id, actor=request.user)
    return Response({'ok': True, 'message': 'Report approved', 'report': format_report(report)})
