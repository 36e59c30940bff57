from rest_framework import serializers

from clinic.serializers.patient import PatientFieldsSerializer, clean_text

MODALITY_TYPES = ['consultation', 'casualty', 'xray', 'pathology', 'ipd', 'radiology', 'custom', 'cardiology']
PAYMENT_METHODS = ['cash', 'online', 'mixed', 'card-credit', 'card-debit']


class ModalitySerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=MODALITY_TYPES)
    doctor = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    specialist = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    visitType = serializers.ChoiceField(choices=['first', 'followup'], required=False, allow_null=True)
    service = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    charges = serializers.FloatField(required=False, min_value=0, default=0)


class PaymentSerializer(serializers.Serializer):
    paymentMethod = serializers.ChoiceField(choices=PAYMENT_METHODS, default='cash')
    cashAmount = serializers.FloatField(required=False, min_value=0)
    onlineAmount = serializers.FloatField(required=False, min_value=0)
    discount = serializers.FloatField(required=False, min_value=0)
    totalPaid = serializers.FloatField(required=False, min_value=0, allow_null=True)
    cashThrough = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    onlineThrough = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class AppointmentSerializer(PatientFieldsSerializer):
    existingPatientId = serializers.IntegerField(required=False, allow_null=True)
    appointmentType = serializers.ChoiceField(choices=['visithospital', 'oncall'], default='visithospital')
    modalities = ModalitySerializer(many=True, required=False)
    payment = PaymentSerializer(required=False)
    referBy = serializers.CharField(required=False, allow_blank=True, default='')
    additionalNotes = serializers.CharField(required=False, allow_blank=True, default='')
    time = serializers.TimeField(required=False, allow_null=True)

    def validate_referBy(self, v):
        return clean_text(v)

    def validate_additionalNotes(self, v):
        return clean_text(v)


class AppointmentUpdateSerializer(PatientFieldsSerializer):
    modalities = ModalitySerializer(many=True, required=False)
    payment = PaymentSerializer(required=False)
    referBy = serializers.CharField(required=False, allow_blank=True)
    additionalNotes = serializers.CharField(required=False, allow_blank=True)


class OPDListQuerySerializer(serializers.Serializer):
    filter = serializers.ChoiceField(choices=['today', '7days', 'all'], required=False)
    date = serializers.DateField(required=False)
    q = serializers.CharField(required=False, allow_blank=True, max_length=64)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=200)


class BookOnCallSerializer(serializers.Serializer):
    modalities = ModalitySerializer(many=True)
    payment = PaymentSerializer(required=False)


class MedicineSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    consumptionDays = serializers.CharField(required=False, allow_blank=True)
    times = serializers.DictField(child=serializers.BooleanField(), required=False)
    instruction = serializers.CharField(required=False, allow_blank=True)


class PrescriptionSerializer(serializers.Serializer):
    symptoms = serializers.CharField(required=False, allow_blank=True)
    medicines = MedicineSerializer(many=True, required=False)
    overallInstruction = serializers.CharField(required=False, allow_blank=True)

    def prescription_data(self) -> dict:
        vd = self.validated_data
        data = {k: vd[k] for k in ('symptoms', 'medicines') if k in vd}
        if 'overallInstruction' in vd:
            data['overall_instruction'] = vd['overallInstruction']
        return data
