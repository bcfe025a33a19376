import django_filters

from modules.checkout.models import Sale


class SaleFilter(django_filters.FilterSet):
    client = django_filters.UUIDFilter(field_name="client_id")
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    trackingStatus = django_filters.CharFilter(
        field_name="tracking_status", lookup_expr="iexact"
    )
    paymentType = django_filters.CharFilter(
        field_name="payment_type", lookup_expr="iexact"
    )
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    class Meta:
        model = Sale
        fields = [
            "client",
            "status",
            "trackingStatus",
            "paymentType",
            "start_date",
            "end_date",
        ]
