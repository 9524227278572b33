from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """Page-number pagination; ``?page_size=`` may shrink or grow the page up to 100."""

    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 100
