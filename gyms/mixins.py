from rest_framework.exceptions import PermissionDenied


class GymScopedMixin:
    """Restrict a view to the gym (tenant) of the authenticated user."""

    def get_gym(self):
        gym = getattr(self.request.user, 'gym', None)
        if gym is None:
            raise PermissionDenied("User is not attached to a gym")
        return gym

    def get_queryset(self):
        return super().get_queryset().filter(gym=self.get_gym())

    def perform_create(self, serializer):
        serializer.save(gym=self.get_gym())
