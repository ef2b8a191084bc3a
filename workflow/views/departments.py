from __future__ import annotations

from django.db.models import ProtectedError
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from workflow.exceptions import InvalidArgument, NotFound, PreconditionFailed
from workflow.models import Department
from workflow.permissions import IsAdminRole, IsStaff, ensure_department_scope, is_admin
from workflow.serializers.department import DepartmentSerializer
from workflow.services import patients as patient_service
from workflow.services.audit import log_action
from workflow.services.formatting import format_department, format_patient
from workflow.services.workflow import get_engine


def _get_department(dept_id) -> Department:
    dept = Department.objects.filter(id=dept_id).first()
    if not dept:
        raise NotFound(f'Department {dept_id} not found')
    return dept


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def departments(request):
    if request.method == 'GET':
        qs = Department.objects.order_by('name')
        if request.query_params.get('active') in ('1', 'true'):
            qs = qs.filter(is_active=True)
        return Response([format_department(d) for d in qs])

    if not is_admin(request.user):
        raise PermissionDenied('Admin only')
    s = DepartmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    fields = s.to_model_fields()
    if Department.objects.filter(name=fields['name'].strip().lower()).exists() \
            or Department.objects.filter(code=fields['code'].strip().upper()).exists():
        raise InvalidArgument('A department with this name or code already exists')
    dept = Department.objects.create(**fields)
    log_action(user=request.user, action='department_create', object_type='department', object_id=dept.id)
    return Response(format_department(dept), status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def department_detail(request, dept_id: int):
    dept = _get_department(dept_id)
    if request.method == 'GET':
        return Response(format_department(dept))
    if request.method == 'DELETE':
        try:
            dept.delete()
        except ProtectedError:
            raise PreconditionFailed(f'Department {dept.name} still has cases, reports or tests')
        log_action(user=request.user, action='department_delete', object_type='department', object_id=dept_id)
        return Response({'ok': True})

    s = DepartmentSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    dept = get_engine().update_department(dept.id, s.to_model_fields(), actor=request.user)
    return Response(format_department(dept))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def department_patients(request, dept_id: int):
    ensure_department_scope(request.user, dept_id)
    data = []
    for p in patient_service.department_patients(dept_id):
        item = format_patient(p, mask_id=not is_admin(request.user))
        item.pop('attachments', None)
        data.append(item)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def patient_details(request, patient_id: int):
    """Full patient record for the department workspace; govt id masked below admin."""
    patient = patient_service.get_patient(patient_id)
    if is_admin(request.user):
        return Response(format_patient(patient))
    patient_service.ensure_department_access(request.user, patient)
    return Response(format_patient(patient, mask_id=True))
