import django_filters

from modules.catalog.constants import CategoryStatus
from modules.catalog.models import Category


class CategoryFilter(django_filters.FilterSet):
    name = django_filters.CharFilter(field_name="name", lookup_expr="icontains")
    status = django_filters.ChoiceFilter(field_name="status", choices=CategoryStatus.choices)
    min_books = django_filters.NumberFilter(field_name="book_count", lookup_expr="gte")

    class Meta:
        model = Category
        fields = ["name", "status", "min_books"]
