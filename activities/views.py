from rest_framework import viewsets
from gyms.mixins import GymScopedMixin
from .models import Activity, MembershipPlan
from .serializers import ActivitySerializer, MembershipPlanSerializer


class ActivityViewSet(GymScopedMixin, viewsets.ModelViewSet):
    queryset = Activity.objects.prefetch_related('tiers')
    serializer_class = ActivitySerializer


class MembershipPlanViewSet(GymScopedMixin, viewsets.ModelViewSet):
    queryset = MembershipPlan.objects.select_related('activity')
    serializer_class = MembershipPlanSerializer

    def get_queryset(self):
        qs = super().get_queryset()
        activity_id = self.request.query_params.get('activity_id')
        if activity_id:
            qs = qs.filter(activity_id=activity_id)
        return qs
