"""
Custom filters for per-dormitory data
"""
from rest_framework import filters


class DormitoryFilterBackend(filters.BaseFilterBackend):
    """
    Narrow a queryset to one dormitory when ?dormitory=<id> is given
    """
    lookup = 'dormitory_id'

    def filter_queryset(self, request, queryset, view):
        """Filter by dormitory"""
        dormitory_id = request.query_params.get('dormitory')
        if not dormitory_id:
            return queryset
        if not dormitory_id.isdigit():
            return queryset.none()
        lookup = getattr(view, 'dormitory_lookup', self.lookup)
        return queryset.filter(**{lookup: int(dormitory_id)})
