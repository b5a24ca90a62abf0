# billing/filters.py

import django_filters

from billing.models import AdHocInvoice, RecurringPeriod
from billing.services.rent_reports import activity_window


class AdHocInvoiceFilter(django_filters.FilterSet):
    property = django_filters.UUIDFilter(field_name="unit_id")
    status = django_filters.ChoiceFilter(choices=AdHocInvoice.STATUS_CHOICES)
    month = django_filters.NumberFilter(field_name="month")
    year = django_filters.NumberFilter(field_name="year")

    class Meta:
        model = AdHocInvoice
        fields = ["property", "status", "month", "year"]


class RecurringPeriodFilter(django_filters.FilterSet):
    """
    date_from / date_to select periods due OR paid inside the window.
    Expects a queryset annotated by rent_reports.with_settlement().
    """

    property = django_filters.UUIDFilter(field_name="unit_id")
    tenant = django_filters.UUIDFilter(field_name="tenant_id")
    status = django_filters.ChoiceFilter(choices=RecurringPeriod.STATUS_CHOICES)
    date_from = django_filters.DateFilter(method="filter_activity")
    date_to = django_filters.DateFilter(method="filter_activity")

    class Meta:
        model = RecurringPeriod
        fields = ["property", "tenant", "status", "date_from", "date_to"]

    def filter_activity(self, queryset, name, value):
        start = self.form.cleaned_data.get("date_from")
        end = self.form.cleaned_data.get("date_to")
        # both bounds are applied together on the first call
        if name == "date_to" and start is not None:
            return queryset
        return queryset.filter(activity_window(start, end))
