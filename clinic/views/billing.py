"""
IPD billing views: services, consultant visits, payments, discount and the
final invoice. All of them operate on one admission's ledger.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsDeskRole
from clinic.serializers.billing import (
    BulkServicesSerializer,
    ConsultantVisitSerializer,
    DeleteConsultantSerializer,
    DeleteServiceGroupSerializer,
    DiscountSerializer,
    PaymentSerializer,
    ServiceSerializer,
)
from clinic.services import billing
from clinic.services.audit import log_action
from clinic.services.notifications import payment_message, send_text
from clinic.views.ipd import admission_or_404


def _ledger(ipd) -> dict:
    ipd.refresh_from_db(fields=['service_detail', 'payment_detail'])
    return {
        'serviceDetail': ipd.service_detail,
        'paymentDetail': ipd.payment_detail,
        'totals': billing.billing_totals(ipd),
    }


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDeskRole])
def add_service(request, pk: int):
    ipd = admission_or_404(pk)
    s = ServiceSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    items = billing.add_service(ipd, name=vd['serviceName'], amount=vd['amount'], quantity=vd['quantity'])
    return Response({'ok': True, 'added': items, **_ledger(ipd)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDeskRole])
def add_bulk_services(request, pk: int):
    ipd = admission_or_404(pk)
    s = BulkServicesSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    items = billing.add_bulk_services(ipd, s.validated_data['services'])
    return Response({'ok': True, 'added': items, **_ledger(ipd)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDeskRole])
def add_consultant_visit(request, pk: int):
    ipd = admission_or_404(pk)
    s = ConsultantVisitSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    items = billing.add_consultant_visit(ipd, doctor_name=vd['doctorName'], charge=vd['charge'], times=vd['times'])
    return Response({'ok': True, 'added': items, **_ledger(ipd)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDeskRole])
def delete_service_group(request, pk: int):
    ipd = admission_or_404(pk)
    s = DeleteServiceGroupSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    removed = billing.delete_service_group(ipd, name=s.validated_data['serviceName'], amount=s.validated_data['amount'])
    return Response({'ok': True, 'removed': removed, **_ledger(ipd)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDeskRole])
def delete_consultant_charges(request, pk: int):
    ipd = admission_or_404(pk)
    s = DeleteConsultantSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    removed = billing.delete_consultant_charges(ipd, doctor_name=s.validated_data['doctorName'])
    return Response({'ok': True, 'removed': removed, **_ledger(ipd)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDeskRole])
def record_payment(request, pk: int):
    """Record a payment or refund; optionally message the patient the new deposit."""
    ipd = admission_or_404(pk)
    s = PaymentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    entry = billing.record_payment(
        ipd,
        amount=vd['amount'],
        payment_type=vd['paymentType'],
        amount_type=vd['amountType'],
        transaction_type=vd.get('transactionType'),
        on_date=vd.get('date'),
        through=vd.get('through'),
        remark=vd['remark'],
    )
    log_action(user=request.user, action='payment_record', object_type='ipd', object_id=pk,
               detail={'paymentId': entry['id'], 'amount': entry['amount'], 'amountType': entry['amountType']})
    ledger = _ledger(ipd)
    payload = {'ok': True, 'payment': entry, **ledger}
    if vd.get('sendWhatsapp'):
        message = payment_message(ipd.patient.name, entry['amount'], ledger['totals']['deposit'], entry['amountType'])
        payload['whatsappSent'] = send_text(ipd.patient.number, message)
    return Response(payload, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsDeskRole])
def delete_payment(request, pk: int, payment_id: str):
    ipd = admission_or_404(pk)
    removed = billing.delete_payment(ipd, payment_id)
    log_action(user=request.user, action='payment_delete', object_type='ipd', object_id=pk,
               detail={'paymentId': payment_id, 'amount': removed.get('amount'),
                       'amountType': removed.get('amountType')})
    return Response({'ok': True, **_ledger(ipd)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDeskRole])
def apply_discount(request, pk: int):
    ipd = admission_or_404(pk)
    s = DiscountSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    given_by = s.validated_data['givenBy'] or request.user.get_full_name() or request.user.username
    entry = billing.apply_discount(ipd, amount=s.validated_data['amount'], given_by=given_by)
    log_action(user=request.user, action='discount_apply', object_type='ipd', object_id=pk,
               detail={'amount': entry['amount'], 'givenBy': given_by})
    return Response({'ok': True, 'discount': entry, **_ledger(ipd)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDeskRole])
def invoice(request, pk: int):
    return Response({'ok': True, 'data': billing.invoice(admission_or_404(pk))})
