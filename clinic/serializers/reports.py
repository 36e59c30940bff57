from rest_framework import serializers


class PeriodQuerySerializer(serializers.Serializer):
    filter = serializers.ChoiceField(
        choices=['today', 'yesterday', 'week', 'month', '7days', 'dateRange'], default='today',
    )
    month = serializers.RegexField(r'^\d{4}-\d{2}$', required=False)
    startDate = serializers.DateField(required=False)
    endDate = serializers.DateField(required=False)
    q = serializers.CharField(required=False, allow_blank=True, max_length=64)


class DayQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)


class SheetSerializer(serializers.Serializer):
    data = serializers.JSONField()
    header = serializers.JSONField(required=False)


class EntrySerializer(serializers.Serializer):
    entry = serializers.DictField()
