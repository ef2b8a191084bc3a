from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from workflow.exceptions import NotFound
from workflow.models import Case
from workflow.permissions import IsDepartmentRole, IsStaff, ensure_department_scope
from workflow.serializers.workflow import CaseAssignSerializer, CaseCreateSerializer, CaseUpdateSerializer
from workflow.services.formatting import format_case, format_report
from workflow.services.workflow import get_engine


def _get_case(case_id) -> Case:
    case = Case.objects.select_related('patient').filter(id=case_id).first()
    if not case:
        raise NotFound(f'Case {case_id} not found')
    return case


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaff])
def create_case(request):
    s = CaseCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    ensure_department_scope(request.user, vd['departmentId'])
    case = get_engine().create_case(
        vd['patientId'], vd['departmentId'],
        assigned_to=vd.get('assignedTo'),
        procedure=vd.get('procedure'),
        scheduled_at=vd.get('scheduledAt'),
        actor=request.user,
    )
    return Response(format_case(case), status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def cases_by_department(request, dept_id: int):
    ensure_department_scope(request.user, dept_id)
    qs = Case.objects.select_related('patient').filter(department_id=dept_id).order_by('-created_at')[:200]
    return Response([format_case(c) for c in qs])


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaff])
def case_detail(request, case_id: int):
    case = _get_case(case_id)
    ensure_department_scope(request.user, case.department_id)
    if request.method == 'GET':
        return Response(format_case(case))
    if request.method == 'DELETE':
        if not IsDepartmentRole().has_permission(request, None):
            raise PermissionDenied('Department or admin only')
        get_engine().delete_case(case.id, actor=request.user)
        return Response({'ok': True, 'message': 'Case deleted'})

    s = CaseUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    case = get_engine().update_case(case.id, s.to_engine_fields(), actor=request.user)
    return Response(format_case(_get_case(case.id)))


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsStaff])
def assign_case(request, case_id: int):
    case = _get_case(case_id)
    ensure_department_scope(request.user, case.department_id)
    s = CaseAssignSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    case = get_engine().update_case(case.id, {'assigned_to': s.validated_data['assignedTo']}, actor=request.user)
    return Response(format_case(_get_case(case.id)))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDepartmentRole])
def create_report_from_case(request, case_id: int):
    case = _get_case(case_id)
    ensure_department_scope(request.user, case.department_id)
    report = get_engine().create_report_from_case(case.id, actor=request.user)
    return Response(format_report(report), status=status.HTTP_201_CREATED)
