"""
Mobile portal bookings.

Every appointment belongs to the portal account that made it; lookups are
always filtered by ``request.user`` so another account's booking reads as
not found.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from workflow.exceptions import NotFound, PreconditionFailed
from workflow.models import MobileAppointment
from workflow.permissions import IsPortalRole
from workflow.serializers.catalog import AppointmentSerializer
from workflow.services.audit import log_action
from workflow.services.formatting import format_appointment


def _own(request, appointment_id) -> MobileAppointment:
    appt = MobileAppointment.objects.filter(id=appointment_id, user=request.user).first()
    if not appt:
        raise NotFound('Appointment not found')
    return appt


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPortalRole])
def appointments(request):
    if request.method == 'GET':
        qs = MobileAppointment.objects.filter(user=request.user).order_by('-date', '-id')
        return Response({'ok': True, 'appointments': [format_appointment(a) for a in qs]})

    s = AppointmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    fields = s.to_model_fields()
    fields.pop('status', None)
    paid_upfront = fields['payment_method'] == MobileAppointment.PAY_NOW
    appt = MobileAppointment.objects.create(
        user=request.user,
        payment_status=MobileAppointment.PAYMENT_COMPLETED if paid_upfront else MobileAppointment.PAYMENT_PENDING,
        **fields,
    )
    log_action(user=request.user, action='appointment_create', object_type='appointment', object_id=appt.id)
    return Response({'ok': True, 'appointment': format_appointment(appt)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsPortalRole])
def appointment_detail(request, appointment_id: int):
    appt = _own(request, appointment_id)
    if request.method == 'GET':
        return Response({'ok': True, 'appointment': format_appointment(appt)})

    if request.method == 'DELETE':
        appt.delete()
        log_action(user=request.user, action='appointment_delete', object_type='appointment',
                   object_id=appointment_id)
        return Response({'ok': True, 'message': 'Deleted'})

    if appt.status in (MobileAppointment.STATUS_CANCELLED, MobileAppointment.STATUS_COMPLETED):
        raise PreconditionFailed(f'Appointment is {appt.status.lower()}')
    s = AppointmentSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    fields = s.to_model_fields()
    for name, value in fields.items():
        setattr(appt, name, value)
    if fields:
        appt.save()
        log_action(user=request.user, action='appointment_update', object_type='appointment', object_id=appt.id,
                   detail={'fields': sorted(fields)})
    return Response({'ok': True, 'appointment': format_appointment(appt)})
