# backend/users/views.py
import logging

from django.contrib.auth import get_user_model

from rest_framework import generics, viewsets, status, serializers
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.authtoken.models import Token

from .serializers import UserSerializer, CustomAuthTokenSerializer
from inventory.permissions import IsAdminUser
from inventory.notifications import schedule_activity
from inventory.views import client_meta

logger = logging.getLogger(__name__)

CustomUser = get_user_model()


class UserViewSet(viewsets.ReadOnlyModelViewSet):
    """Daftar user, hanya untuk Admin."""
    queryset = CustomUser.objects.all().order_by('email')
    serializer_class = UserSerializer
    permission_classes = [IsAdminUser]


class CurrentUserView(generics.RetrieveAPIView):
    """Detail user yang sedang login."""
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated]

    def get_object(self):
        return self.request.user


class LoginView(APIView):
    """
    Login dengan email dan password.
    Mengembalikan auth token dan data user.
    """
    permission_classes = [AllowAny]
    serializer_class = CustomAuthTokenSerializer

    def post(self, request, *args, **kwargs):
        serializer = self.serializer_class(data=request.data, context={'request': request})
        try:
            serializer.is_valid(raise_exception=True)
        except serializers.ValidationError as e:
            error_detail = e.detail
            if isinstance(error_detail, dict) and 'non_field_errors' in error_detail:
                error_detail = error_detail['non_field_errors'][0]
            logger.warning("Login gagal untuk %s", request.data.get('email'))
            return Response({"error": error_detail}, status=status.HTTP_400_BAD_REQUEST)

        user = serializer.validated_data['user']
        token, _ = Token.objects.get_or_create(user=user)
        schedule_activity(
            action='LOGIN', entity='USER', entity_id=user.pk, user=user,
            description=f"Login: {user.email}", **client_meta(request),
        )
        return Response({
            'token': token.key,
            'user': UserSerializer(user, context={'request': request}).data,
        }, status=status.HTTP_200_OK)


class LogoutView(APIView):
    """Logout: hapus token milik user."""
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        deleted, _ = Token.objects.filter(user=request.user).delete()
        if not deleted:
            return Response({"error": "Token tidak ditemukan."}, status=status.HTTP_400_BAD_REQUEST)
        schedule_activity(
            action='LOGOUT', entity='USER', entity_id=request.user.pk, user=request.user,
            description=f"Logout: {request.user.email}", **client_meta(request),
        )
        return Response(status=status.HTTP_204_NO_CONTENT)
