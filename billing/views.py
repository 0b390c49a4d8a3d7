from rest_framework import mixins, viewsets, status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
import logging

from gyms.permissions import IsSuperAdmin
from .models import SubscriptionPlan, RenewalRequest
from .serializers import (
    SubscriptionPlanSerializer,
    RenewalRequestSerializer,
    RejectRenewalRequestSerializer,
)

logger = logging.getLogger(__name__)


class SubscriptionPlanViewSet(viewsets.ModelViewSet):
    queryset = SubscriptionPlan.objects.all()
    serializer_class = SubscriptionPlanSerializer

    def get_permissions(self):
        if self.action in ('list', 'retrieve'):
            return [IsAuthenticated()]
        return [IsSuperAdmin()]

    def get_queryset(self):
        qs = super().get_queryset()
        if not self.request.user.is_superadmin:
            qs = qs.filter(is_active=True)
        return qs


class RenewalRequestViewSet(mixins.CreateModelMixin, mixins.ListModelMixin,
                            mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    queryset = RenewalRequest.objects.select_related('gym', 'requested_by')
    serializer_class = RenewalRequestSerializer

    def get_permissions(self):
        if self.action in ('approve', 'reject'):
            return [IsSuperAdmin()]
        return [IsAuthenticated()]

    def get_queryset(self):
        qs = super().get_queryset()
        user = self.request.user
        if not user.is_superadmin:
            qs = qs.filter(gym=user.gym) if user.gym_id else qs.none()

        status_filter = self.request.query_params.get('status')
        if status_filter:
            qs = qs.filter(status=status_filter)
        return qs

    def perform_create(self, serializer):
        user = self.request.user
        if user.gym is None:
            raise PermissionDenied("User is not attached to a gym")
        renewal_request = serializer.save(gym=user.gym, requested_by=user)
        logger.info(f"Renewal request {renewal_request.pk} created for gym {user.gym_id}")

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        renewal_request = self.get_object()
        try:
            new_end_date = renewal_request.approve(request.user)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        logger.info(f"Renewal request {renewal_request.pk} approved; gym active until {new_end_date}")
        data = RenewalRequestSerializer(renewal_request, context={'request': request}).data
        data['subscription_end_date'] = new_end_date
        return Response(data, status=status.HTTP_200_OK)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        renewal_request = self.get_object()
        serializer = RejectRenewalRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            renewal_request.reject(request.user, serializer.validated_data['reason'])
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        logger.info(f"Renewal request {renewal_request.pk} rejected")
        return Response(RenewalRequestSerializer(renewal_request, context={'request': request}).data)
