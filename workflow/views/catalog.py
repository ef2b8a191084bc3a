"""Diagnostic test catalog: what intake can add to ``Patient.selected_tests``."""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from workflow.exceptions import NotFound
from workflow.models import Department, DiagnosticTest
from workflow.permissions import IsStaff, is_admin
from workflow.serializers.catalog import DiagnosticTestSerializer
from workflow.services.audit import log_action
from workflow.services.formatting import format_test


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaff])
def tests(request):
    if request.method == 'GET':
        qs = DiagnosticTest.objects.order_by('department_name', 'name')
        return Response([format_test(t) for t in qs])

    if not is_admin(request.user):
        raise PermissionDenied('Admin only')
    s = DiagnosticTestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    fields = s.to_model_fields()
    department = Department.objects.filter(pk=fields.pop('department_id')).first()
    if not department:
        raise NotFound(f"Department {s.validated_data['department']} not found")
    test = DiagnosticTest.objects.create(department=department, **fields)
    log_action(user=request.user, action='test_create', object_type='test', object_id=test.id,
               detail={'name': test.name, 'departmentId': department.id})
    return Response(format_test(test), status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def tests_by_department(request, dept_id: int):
    qs = DiagnosticTest.objects.filter(department_id=dept_id).order_by('name')
    return Response([format_test(t) for t in qs])


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def tests_by_department_name(request, name: str):
    qs = DiagnosticTest.objects.filter(department_name=name.strip().lower()).order_by('name')
    return Response([format_test(t) for t in qs])
