import bleach
from rest_framework import serializers


def clean_text(v):
    return bleach.clean((v or '').strip(), strip=True)


def _digits(v):
    v = clean_text(v)
    if v and not v.isdigit():
        raise serializers.ValidationError('Invalid phone number format.')
    return v


class PatientFieldsSerializer(serializers.Serializer):
    """Demographics as sent by the desk forms (camelCase)."""
    uhid = serializers.CharField(required=False, allow_blank=True, max_length=32)
    name = serializers.CharField(required=False, max_length=255)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=20)
    age = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=150)
    ageUnit = serializers.ChoiceField(choices=['year', 'years', 'month', 'months', 'day', 'days'], required=False)
    dob = serializers.DateField(required=False, allow_null=True)
    gender = serializers.CharField(required=False, allow_blank=True, max_length=16)
    address = serializers.CharField(required=False, allow_blank=True)

    def validate_name(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Patient name is required.')
        return v

    def validate_phone(self, v):
        return _digits(v)

    def validate_address(self, v):
        return clean_text(v)

    def patient_data(self) -> dict:
        """Validated fields keyed the way the patient service expects."""
        vd = self.validated_data
        keys = {'name': 'name', 'phone': 'number', 'age': 'age', 'ageUnit': 'age_unit', 'dob': 'dob',
                'gender': 'gender', 'address': 'address'}
        return {dst: vd[src] for src, dst in keys.items() if src in vd}


class PatientSearchSerializer(serializers.Serializer):
    uhid = serializers.CharField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not (attrs.get('uhid') or attrs.get('phone')):
            raise serializers.ValidationError('Provide a UHID or a phone number.')
        return attrs


class PageQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True, max_length=64)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=200)


def paginate(qs, vd: dict):
    """Slice a queryset by page/pageSize; returns (rows, pagination)."""
    total = qs.count()
    page = vd.get('page') or 1
    page_size = vd.get('pageSize') or 0
    if page_size:
        start = (page - 1) * page_size
        qs = qs[start:start + page_size]
    return qs, {'total': total, 'page': page, 'pageSize': page_size or total}
