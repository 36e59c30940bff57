from rest_framework import serializers

from clinic.serializers.patient import PatientFieldsSerializer, clean_text
from clinic.services.discharge import CAMEL_FIELDS

ADMISSION_KEYS = {
    'admissionSource': 'admission_source',
    'admissionType': 'admission_type',
    'underCareOfDoctor': 'under_care_of_doctor',
    'relativeName': 'relative_name',
    'relativePhone': 'relative_ph_no',
    'relativeAddress': 'relative_address',
    'admissionDate': 'admission_date',
    'admissionTime': 'admission_time',
    'mrd': 'mrd',
    'tpa': 'tpa',
    'roomType': 'room_type',
    'bed': 'bed',
    'depositAmount': 'deposit_amount',
    'paymentType': 'payment_type',
    'through': 'through',
}


class AdmissionSerializer(PatientFieldsSerializer):
    """Admission form. Presence rules are checked by the admission service."""
    admissionSource = serializers.CharField(required=False, allow_blank=True, max_length=64)
    admissionType = serializers.CharField(required=False, allow_blank=True, max_length=64)
    underCareOfDoctor = serializers.CharField(required=False, allow_blank=True, max_length=255)
    relativeName = serializers.CharField(required=False, allow_blank=True, max_length=255)
    relativePhone = serializers.CharField(required=False, allow_blank=True, max_length=20)
    relativeAddress = serializers.CharField(required=False, allow_blank=True)
    admissionDate = serializers.DateField(required=False, allow_null=True)
    admissionTime = serializers.TimeField(required=False, allow_null=True)
    mrd = serializers.CharField(required=False, allow_blank=True, max_length=64)
    tpa = serializers.BooleanField(required=False)
    roomType = serializers.CharField(required=False, allow_blank=True, max_length=64)
    bed = serializers.IntegerField(required=False, allow_null=True)
    depositAmount = serializers.FloatField(required=False, min_value=0, allow_null=True)
    paymentType = serializers.ChoiceField(choices=['cash', 'online'], required=False)
    through = serializers.CharField(required=False, allow_blank=True, max_length=64)
    sendWhatsapp = serializers.BooleanField(required=False, default=False)

    def validate_relativeName(self, v):
        return clean_text(v)

    def validate_relativePhone(self, v):
        v = clean_text(v)
        if v and not v.isdigit():
            raise serializers.ValidationError('Invalid phone number format.')
        return v

    def admission_form(self) -> dict:
        vd = self.validated_data
        form = self.patient_data()
        form.update({dst: vd[src] for src, dst in ADMISSION_KEYS.items() if src in vd})
        if vd.get('uhid'):
            form['uhid'] = vd['uhid']
        return form


class IPDListQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True, max_length=64)
    ward = serializers.CharField(required=False, allow_blank=True, max_length=64)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=20)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=200)


class NotesSerializer(serializers.Serializer):
    note = serializers.CharField(allow_blank=True)


class DischargeSerializer(serializers.Serializer):
    finalDiagnosis = serializers.CharField(required=False, allow_blank=True)
    procedures = serializers.CharField(required=False, allow_blank=True)
    provisionalDiagnosis = serializers.CharField(required=False, allow_blank=True)
    historyOfPresentIllness = serializers.CharField(required=False, allow_blank=True)
    investigations = serializers.CharField(required=False, allow_blank=True)
    treatmentGiven = serializers.CharField(required=False, allow_blank=True)
    hospitalCourse = serializers.CharField(required=False, allow_blank=True)
    surgeryProcedureDetails = serializers.CharField(required=False, allow_blank=True)
    conditionAtDischarge = serializers.CharField(required=False, allow_blank=True)
    dischargeMedication = serializers.CharField(required=False, allow_blank=True)
    followUp = serializers.CharField(required=False, allow_blank=True)
    dischargeInstructions = serializers.CharField(required=False, allow_blank=True)
    dischargeType = serializers.ChoiceField(
        choices=['Discharge', 'Discharge Partially', 'Death'], required=False,
    )

    def summary_fields(self) -> dict:
        vd = self.validated_data
        return {name: vd[key] for name, key in CAMEL_FIELDS.items() if key in vd}


class OTSerializer(serializers.Serializer):
    otType = serializers.ChoiceField(choices=['major', 'minor'])
    otDate = serializers.DateField()
    otNotes = serializers.CharField(required=False, allow_blank=True, default='')
