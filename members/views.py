from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from django.db import models
from gyms.mixins import GymScopedMixin
from .models import Member
from .serializers import MemberSerializer


class MemberViewSet(GymScopedMixin, viewsets.ModelViewSet):
    queryset = Member.objects.all()
    serializer_class = MemberSerializer

    def get_queryset(self):
        qs = super().get_queryset()

        status_filter = self.request.query_params.get('status')
        if status_filter:
            qs = qs.filter(status=status_filter)

        # Search by name, email or phone
        query = self.request.query_params.get('q')
        if query:
            qs = qs.filter(
                models.Q(first_name__icontains=query) |
                models.Q(last_name__icontains=query) |
                models.Q(email__icontains=query) |
                models.Q(phone__icontains=query)
            )
        return qs

    @action(detail=True, methods=['patch'], url_path='block')
    def block_member(self, request, pk=None):
        member = self.get_object()
        member.status = Member.Status.INACTIVE
        member.save(update_fields=['status', 'updated_at'])
        return Response({'status': 'Member blocked successfully'}, status=status.HTTP_200_OK)

    @action(detail=True, methods=['patch'], url_path='unblock')
    def unblock_member(self, request, pk=None):
        member = self.get_object()
        member.status = Member.Status.ACTIVE
        member.save(update_fields=['status', 'updated_at'])
        return Response({'status': 'Member unblocked successfully'}, status=status.HTTP_200_OK)
