"""
Mobile portal endpoints.

Reports created here share the main report table (``source='mobile'``) and
carry the patient's phone number; portal users (role ``patient``) see the
reports filed under their own phone number.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from workflow.exceptions import InvalidArgument, NotFound
from workflow.models import Report
from workflow.permissions import IsDepartmentRole, STAFF_ROLES
from workflow.serializers.workflow import MobileReportCreateSerializer, clinical_fields
from workflow.services.formatting import format_report
from workflow.services.workflow import get_engine


def _caller_phone(request) -> str:
    user = request.user
    if user.role == 'patient':
        if not user.phone:
            raise InvalidArgument('No phone number on this account')
        return user.phone
    if user.role in STAFF_ROLES:
        phone = (request.query_params.get('phone') or '').strip()
        if not phone:
            raise InvalidArgument('phone query parameter is required')
        return phone
    raise PermissionDenied()


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDepartmentRole])
def create_mobile_report(request):
    s = MobileReportCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    file = None
    if vd.get('reportFile'):
        file = {
            'url': vd['reportFile']['url'],
            'storageId': vd['reportFile'].get('storageId', ''),
            'filename': vd['reportFile'].get('filename', ''),
        }
    report = get_engine().create_mobile_report(
        vd['patientId'],
        case_id=vd.get('case'),
        fields=clinical_fields(vd),
        file=file,
        actor=request.user,
    )
    return Response({'ok': True, 'report': format_report(report)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_reports(request):
    phone = _caller_phone(request)
    qs = Report.objects.select_related('patient').filter(phone=phone).order_by('-created_at', '-id')
    return Response({'ok': True, 'reports': [format_report(r) for r in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_report_detail(request, report_id: int):
    phone = _caller_phone(request)
    report = Report.objects.select_related('patient').filter(id=report_id, phone=phone).first()
    if not report:
        raise NotFound('Report not found')
    return Response({'ok': True, 'report': format_report(report)})
