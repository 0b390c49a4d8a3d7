# memberships/views.py
from django.http import HttpResponse
from django.utils import timezone
from rest_framework import mixins, viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from django.db import models
import logging

from gyms.mixins import GymScopedMixin
from gyms.models import AutoRenewalConfig
from gyms.serializers import AutoRenewalConfigSerializer
from .automation import run_monthly_renewals
from .models import Membership, PendingPayment, RenewalLog
from .reports import REPORT_BUILDERS, XLSX_CONTENT_TYPE
from .serializers import (
    AssignMembershipSerializer,
    BulkRenewSerializer,
    ExpiredMembershipSerializer,
    MembershipSerializer,
    MembershipUpdateSerializer,
    PendingPaymentSerializer,
    RenewalLogSerializer,
    RenewSerializer,
)
from .services import (
    get_upcoming_auto_renewals,
    mark_payment_paid,
    renew_membership,
    renew_selected,
    scan_expired_memberships,
)
from .stats import get_financial_metrics, get_renewal_history, get_renewal_stats

logger = logging.getLogger(__name__)


class MembershipViewSet(GymScopedMixin, viewsets.ModelViewSet):
    queryset = Membership.objects.select_related('member', 'activity', 'plan')
    serializer_class = MembershipSerializer
    http_method_names = ['get', 'post', 'patch', 'head', 'options']

    def get_serializer_class(self):
        if self.action == 'create':
            return AssignMembershipSerializer
        elif self.action == 'partial_update':
            return MembershipUpdateSerializer
        elif self.action == 'renew':
            return RenewSerializer
        elif self.action == 'bulk_renew':
            return BulkRenewSerializer
        return MembershipSerializer

    def get_serializer_context(self):
        context = super().get_serializer_context()
        if self.request.user.is_authenticated:
            context['gym'] = getattr(self.request.user, 'gym', None)
        return context

    def get_queryset(self):
        qs = super().get_queryset()

        member_id = self.request.query_params.get('member_id')
        if member_id:
            qs = qs.filter(member_id=member_id)

        status_filter = self.request.query_params.get('status')
        if status_filter:
            qs = qs.filter(status=status_filter)

        auto_renewal = self.request.query_params.get('auto_renewal')
        if auto_renewal in ('true', 'false'):
            qs = qs.filter(auto_renewal=auto_renewal == 'true')

        # Search by member or activity name
        query = self.request.query_params.get('q')
        if query:
            qs = qs.filter(
                models.Q(member_name__icontains=query) |
                models.Q(activity_name__icontains=query)
            )
        return qs

    def create(self, request, *args, **kwargs):
        """
        Assign a membership to a member
        """
        self.get_gym()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        membership = serializer.save()
        logger.info(f"Membership {membership.pk} assigned to member {membership.member_id}")
        return Response(MembershipSerializer(membership).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['patch'])
    def cancel(self, request, pk=None):
        membership = self.get_object()
        try:
            membership.cancel()
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(MembershipSerializer(membership).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=['get'])
    def expired(self, request):
        """
        Every non-cancelled membership past its end date, with days expired and approximate debt
        """
        items = scan_expired_memberships(self.get_gym())
        return Response({
            'count': len(items),
            'results': ExpiredMembershipSerializer(items, many=True).data,
        })

    @action(detail=False, methods=['get'])
    def upcoming(self, request):
        """
        Auto-renewal memberships ending within the next few days
        """
        days = request.query_params.get('days')
        try:
            days_ahead = int(days) if days is not None else None
        except ValueError:
            return Response({'error': 'days must be an integer'}, status=status.HTTP_400_BAD_REQUEST)
        if days_ahead is not None and days_ahead < 0:
            return Response({'error': 'days must not be negative'}, status=status.HTTP_400_BAD_REQUEST)

        memberships = get_upcoming_auto_renewals(self.get_gym(), days_ahead=days_ahead)
        return Response(MembershipSerializer(memberships, many=True).data)

    @action(detail=True, methods=['post'])
    def renew(self, request, pk=None):
        """
        Renew a membership for N months at the current price
        """
        membership = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = renew_membership(
            self.get_gym(), membership.pk, months=serializer.validated_data['months']
        )
        if not result['success']:
            return Response({'error': result['error']}, status=status.HTTP_400_BAD_REQUEST)

        new_membership = Membership.objects.get(pk=result['new_membership_id'])
        return Response({
            'new_membership': MembershipSerializer(new_membership).data,
            'price_source': result['price_source'],
            'pending_payment_id': result['pending_payment_id'],
        }, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'])
    def bulk_renew(self, request):
        """
        Renew the selected memberships one by one; failures do not stop the batch
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = renew_selected(
            self.get_gym(),
            serializer.validated_data['membership_ids'],
            months=serializer.validated_data['months'],
        )
        return Response(result, status=status.HTTP_200_OK)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(get_renewal_stats(self.get_gym()))

    @action(detail=False, methods=['get'])
    def financial_metrics(self, request):
        return Response(get_financial_metrics(self.get_gym()))

    @action(detail=False, methods=['get'])
    def renewal_history(self, request):
        try:
            limit = min(int(request.query_params.get('limit', 10)), 100)
        except ValueError:
            return Response({'error': 'limit must be an integer'}, status=status.HTTP_400_BAD_REQUEST)

        action_filter = request.query_params.get('action')
        if action_filter and action_filter not in RenewalLog.Action.values:
            return Response({'error': 'Unknown action'}, status=status.HTTP_400_BAD_REQUEST)

        logs = get_renewal_history(self.get_gym(), limit=max(limit, 1), action=action_filter)
        return Response(RenewalLogSerializer(logs, many=True).data)

    @action(detail=False, methods=['get'])
    def export(self, request):
        """
        Download a monthly xlsx report (?report=memberships|renewals&month=YYYY-MM)
        """
        report = request.query_params.get('report', 'memberships')
        builder = REPORT_BUILDERS.get(report)
        if builder is None:
            return Response({'error': 'Unknown report'}, status=status.HTTP_400_BAD_REQUEST)

        month = request.query_params.get('month') or timezone.localdate().strftime('%Y-%m')
        try:
            content = builder(self.get_gym(), month)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        response = HttpResponse(content, content_type=XLSX_CONTENT_TYPE)
        response['Content-Disposition'] = f'attachment; filename="{report}_{month}.xlsx"'
        return response

    @action(detail=False, methods=['get', 'patch'])
    def automation(self, request):
        """
        Read or update the gym's auto-renewal configuration
        """
        config = AutoRenewalConfig.for_gym(self.get_gym())
        if request.method == 'GET':
            return Response(AutoRenewalConfigSerializer(config).data)

        serializer = AutoRenewalConfigSerializer(config, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(f"Auto-renewal config updated for gym {config.gym_id}: {serializer.validated_data}")
        return Response(serializer.data)

    @action(detail=False, methods=['post'])
    def run_automation(self, request):
        """
        Run this month's renewal batch now, regardless of the configured day
        """
        result = run_monthly_renewals(self.get_gym(), force=True)
        if not result['ran']:
            return Response(result, status=status.HTTP_409_CONFLICT)
        return Response(result, status=status.HTTP_200_OK)


class PendingPaymentViewSet(GymScopedMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin,
                            viewsets.GenericViewSet):
    queryset = PendingPayment.objects.select_related('membership')
    serializer_class = PendingPaymentSerializer

    def get_queryset(self):
        qs = super().get_queryset()

        status_filter = self.request.query_params.get('status')
        if status_filter:
            qs = qs.filter(status=status_filter)

        member_id = self.request.query_params.get('member_id')
        if member_id:
            qs = qs.filter(member_id=member_id)
        return qs

    @action(detail=True, methods=['post'])
    def mark_paid(self, request, pk=None):
        payment = self.get_object()
        try:
            payment = mark_payment_paid(payment)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(PendingPaymentSerializer(payment).data, status=status.HTTP_200_OK)
