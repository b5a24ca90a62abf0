# billing/pagination.py

from rest_framework.pagination import PageNumberPagination


class RentHistoryPagination(PageNumberPagination):
    """?page=N&limit=M (limit capped at 100)."""

    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 100
