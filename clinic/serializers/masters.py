from rest_framework import serializers

from clinic.serializers.patient import clean_text


class IPDChargesSerializer(serializers.Serializer):
    female = serializers.FloatField(required=False, min_value=0)
    male = serializers.FloatField(required=False, min_value=0)
    casuality = serializers.FloatField(required=False, min_value=0)
    delux = serializers.FloatField(required=False, min_value=0)
    nicu = serializers.FloatField(required=False, min_value=0)
    suit = serializers.FloatField(required=False, min_value=0)
    icu = serializers.FloatField(required=False, min_value=0)


class DoctorSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    department = serializers.ChoiceField(choices=['opd', 'ipd', 'both'])
    specialist = serializers.ListField(child=serializers.CharField(max_length=128), required=False)
    # charges arrive as free text from the form; junk becomes 0 in the service
    firstVisitCharge = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    followUpCharge = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    ipdCharges = IPDChargesSerializer(required=False)

    def validate_name(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Doctor name is required.')
        return v

    def doctor_data(self) -> dict:
        vd = self.validated_data
        return {
            'dr_name': vd['name'],
            'department': vd['department'],
            'specialist': vd.get('specialist') or [],
            'first_visit_charge': vd.get('firstVisitCharge'),
            'follow_up_charge': vd.get('followUpCharge'),
            'ipd_charges': vd.get('ipdCharges'),
        }


class DoctorListQuerySerializer(serializers.Serializer):
    department = serializers.ChoiceField(choices=['opd', 'ipd', 'both'], required=False)
    q = serializers.CharField(required=False, allow_blank=True, max_length=64)


class MasterServiceSerializer(serializers.Serializer):
    serviceName = serializers.CharField(max_length=255)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)

    def validate_serviceName(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Service name is required.')
        return v


class BedSerializer(serializers.Serializer):
    roomType = serializers.CharField(max_length=64)
    bedNumber = serializers.CharField(max_length=32)
    bedType = serializers.CharField(required=False, allow_blank=True, max_length=64, default='')
    status = serializers.ChoiceField(choices=['available', 'occupied'], default='available')

    def validate_roomType(self, v):
        return clean_text(v).lower()

    def validate_bedNumber(self, v):
        return clean_text(v)


class BedListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=['available', 'occupied'], required=False)
    roomType = serializers.CharField(required=False, allow_blank=True, max_length=64)
    q = serializers.CharField(required=False, allow_blank=True, max_length=64)


class SignatureLookupSerializer(serializers.Serializer):
    pin = serializers.CharField(max_length=32)
