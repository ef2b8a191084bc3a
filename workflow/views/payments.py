from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from workflow.exceptions import NotFound
from workflow.models import Payment, Report
from workflow.permissions import IsAdminRole, IsIntakeRole, IsStaff, ensure_department_scope
from workflow.serializers.workflow import PaymentCreateSerializer, PaymentStatusSerializer
from workflow.services.formatting import format_payment
from workflow.services.workflow import get_engine


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsIntakeRole])
def payments(request):
    if request.method == 'POST':
        s = PaymentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        payment = get_engine().create_payment(
            vd['reportId'], vd['amount'], vd.get('method', ''),
            status=vd.get('status') or Payment.STATUS_PENDING,
            transaction_id=vd.get('transactionId', ''),
            actor=request.user,
        )
        return Response(format_payment(payment), status=status.HTTP_201_CREATED)

    if not IsAdminRole().has_permission(request, None):
        raise PermissionDenied('Admin only')
    qs = Payment.objects.order_by('-created_at', '-id')[:500]
    return Response([format_payment(p) for p in qs])


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsAdminRole])
def payment_status(request, payment_id: int):
    s = PaymentStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    payment = get_engine().update_payment_status(payment_id, s.validated_data['status'], actor=request.user)
    return Response(format_payment(payment))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def payments_by_report(request, report_id: int):
    department_id = Report.objects.filter(id=report_id).values_list('department_id', flat=True).first()
    if department_id is None:
        raise NotFound(f'Report {report_id} not found')
    ensure_department_scope(request.user, department_id)
    qs = Payment.objects.filter(report_id=report_id).order_by('-created_at', '-id')
    return Response([format_payment(p) for p in qs])
