from rest_framework import serializers

from clinic.serializers.patient import clean_text


class ServiceSerializer(serializers.Serializer):
    serviceName = serializers.CharField(max_length=255)
    amount = serializers.FloatField(min_value=0)
    quantity = serializers.IntegerField(min_value=1, max_value=100, default=1)

    def validate_serviceName(self, v):
        return clean_text(v)


class BulkServiceItemSerializer(ServiceSerializer):
    type = serializers.ChoiceField(choices=['service', 'doctorvisit'], default='service')
    doctorName = serializers.CharField(required=False, allow_blank=True)


class BulkServicesSerializer(serializers.Serializer):
    services = BulkServiceItemSerializer(many=True, allow_empty=False)


class ConsultantVisitSerializer(serializers.Serializer):
    doctorName = serializers.CharField(max_length=255)
    charge = serializers.FloatField(min_value=0)
    times = serializers.IntegerField(min_value=1, max_value=100, default=1)


class DeleteServiceGroupSerializer(serializers.Serializer):
    serviceName = serializers.CharField(max_length=255)
    amount = serializers.FloatField(min_value=0)


class DeleteConsultantSerializer(serializers.Serializer):
    doctorName = serializers.CharField(max_length=255)


class PaymentSerializer(serializers.Serializer):
    amount = serializers.FloatField()
    paymentType = serializers.ChoiceField(choices=['cash', 'online'], default='cash')
    amountType = serializers.ChoiceField(choices=['advance', 'deposit', 'settlement', 'refund'], default='deposit')
    transactionType = serializers.CharField(required=False, allow_blank=True, max_length=32)
    date = serializers.DateField(required=False, allow_null=True)
    through = serializers.CharField(required=False, allow_blank=True, max_length=64)
    remark = serializers.CharField(required=False, allow_blank=True, default='')
    sendWhatsapp = serializers.BooleanField(required=False, default=False)

    def validate_remark(self, v):
        return clean_text(v)


class DiscountSerializer(serializers.Serializer):
    amount = serializers.FloatField()
    givenBy = serializers.CharField(required=False, allow_blank=True, default='')
