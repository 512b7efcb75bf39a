from django.db.models import ProtectedError
from drf_spectacular.utils import extend_schema
from loguru import logger
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from utils.exceptions import ConflictError

from .models import User
from .permissions import IsAdmin
from .serializers import LoginSerializer, UserSerializer, UserWriteSerializer


class LoginView(APIView):
    """
    POST /api/auth/login
    {"email": "admin@example.com", "password": "..."}

    Returns an access/refresh token pair and the user profile.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(request=LoginSerializer, summary="Login with email and password")
    def post(self, request):
        serializer = LoginSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data['user']

        refresh = RefreshToken.for_user(user)
        logger.info(f"Login: {user.email} ({user.role})")

        return Response({
            'access':  str(refresh.access_token),
            'refresh': str(refresh),
            'user':    UserSerializer(user).data,
        })


class ProfileView(APIView):
    """GET /api/auth/profile – the logged-in user"""
    permission_classes = [IsAuthenticated]

    @extend_schema(responses=UserSerializer, summary="Current user profile")
    def get(self, request):
        return Response(UserSerializer(request.user).data)


class UserViewSet(viewsets.ModelViewSet):
    """
    User management (admin only)

    GET    /api/users            – list users
    POST   /api/users            – create user
    GET    /api/users/{id}       – retrieve
    PUT    /api/users/{id}       – update (password optional)
    DELETE /api/users/{id}       – delete
    GET    /api/users/staff      – staff members only
    GET    /api/users/me         – current user (any role)
    """
    queryset = User.objects.all().order_by('name')
    permission_classes = [IsAdmin]
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['name', 'email']
    ordering_fields = ['name', 'date_joined']

    def get_serializer_class(self):
        if self.action in ('create', 'update', 'partial_update'):
            return UserWriteSerializer
        return UserSerializer

    def get_permissions(self):
        if self.action == 'me':
            return [IsAuthenticated()]
        return super().get_permissions()

    def destroy(self, request, *args, **kwargs):
        user = self.get_object()
        if user.pk == request.user.pk:
            return Response(
                {'message': 'You cannot delete your own account'},
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            user.delete()
        except ProtectedError:
            raise ConflictError('User has recorded collections or orders and cannot be deleted; deactivate instead')
        return Response({'message': 'User deleted successfully'})

    @action(detail=False, methods=['get'])
    def staff(self, request):
        staff_members = self.queryset.filter(role=User.ROLE_STAFF, is_active=True)
        return Response(UserSerializer(staff_members, many=True).data)

    @action(detail=False, methods=['get'])
    def me(self, request):
        return Response(UserSerializer(request.user).data)
