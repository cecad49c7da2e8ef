"""
Pagination and sorting shared by list endpoints.

Query parameters:
    - page: 1-based page number
    - limit: page size (max 100)
    - sort_by: field to sort on (whitelisted per view)
    - order: asc | desc
"""
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class PageLimitPagination(PageNumberPagination):
    page_size = 10
    page_query_param = 'page'
    page_size_query_param = 'limit'
    max_page_size = 100

    def get_paginated_response(self, data):
        return Response({
            'results': data,
            'total': self.page.paginator.count,
            'page': self.page.number,
            'pages': self.page.paginator.num_pages,
        })


class SortedListMixin:
    """
    Apply ``?sort_by=&order=`` to a queryset.

    ``sort_fields`` maps public sort keys to model fields; unknown keys fall
    back to ``default_sort``.
    """
    sort_fields = {'created_at': 'created_at'}
    default_sort = 'created_at'
    default_order = 'desc'

    def sort_queryset(self, queryset):
        params = self.request.query_params
        field = self.sort_fields.get(params.get('sort_by', ''), self.sort_fields[self.default_sort])
        order = params.get('order', self.default_order).lower()
        prefix = '' if order == 'asc' else '-'
        return queryset.order_by(f"{prefix}{field}", f"{prefix}pk")
