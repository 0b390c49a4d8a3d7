from rest_framework import generics, permissions
from rest_framework.response import Response
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework_simplejwt.tokens import RefreshToken
from .mixins import GymScopedMixin
from .models import AutoRenewalConfig
from .serializers import (
    UserSerializer, GymSerializer, AutoRenewalConfigSerializer,
    LoginSerializer, RegisterSerializer
)


class LoginView(generics.GenericAPIView):
    serializer_class = LoginSerializer
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data['user']

        refresh = RefreshToken.for_user(user)

        return Response({
            'refresh': str(refresh),
            'access': str(refresh.access_token),
            'user': UserSerializer(user).data,
        })


class RegisterView(generics.CreateAPIView):
    serializer_class = RegisterSerializer
    permission_classes = [permissions.AllowAny]


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_user_profile(request):
    return Response({'user': UserSerializer(request.user).data})


class GymProfileView(GymScopedMixin, generics.RetrieveUpdateAPIView):
    """Business profile of the authenticated user's gym."""
    serializer_class = GymSerializer

    def get_object(self):
        return self.get_gym()


class AutoRenewalConfigView(GymScopedMixin, generics.RetrieveUpdateAPIView):
    """Read or change when and how the monthly renewal batch runs for this gym."""
    serializer_class = AutoRenewalConfigSerializer

    def get_object(self):
        return AutoRenewalConfig.for_gym(self.get_gym())
