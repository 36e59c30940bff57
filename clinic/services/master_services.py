from typing import Optional

from clinic.models import MasterService


def filter_services(q: Optional[str] = None):
    qs = MasterService.objects.all().order_by('service_name')
    if q:
        qs = qs.filter(service_name__icontains=q.strip())
    return qs


def serialize_service(s: MasterService) -> dict:
    return {'id': s.id, 'serviceName': s.service_name, 'amount': float(s.amount)}
