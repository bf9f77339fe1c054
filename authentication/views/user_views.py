from django.contrib.auth import get_user_model
from django.db.models import Q
from django_filters import rest_framework as filters
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework import viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.parsers import JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from authentication.permissions import CanManageUsers
from authentication.scope import get_request_scope
from authentication.serializers.user_serializers import UserSerializer, AssignOrgBranchSerializer
from authentication import services
from core.services.access_service import get_object_or_not_found
from core.services.scoping_service import scope_queryset
from core.utils.roles import Capabilities, has_capability

User = get_user_model()


@extend_schema(tags=['Auth'], summary="Current User", responses={200: UserSerializer})
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me(request):
    return Response(UserSerializer(request.user).data)


class UserFilter(filters.FilterSet):
    """Filter for user listing"""
    search = filters.CharFilter(method='filter_search')
    role = filters.ChoiceFilter(choices=User.ROLE_CHOICES)
    is_active = filters.BooleanFilter()

    class Meta:
        model = User
        fields = ['role', 'is_active']

    def filter_search(self, queryset, name, value):
        """Search by name or email"""
        return queryset.filter(
            Q(first_name__icontains=value) |
            Q(last_name__icontains=value) |
            Q(email__icontains=value)
        )


@extend_schema(tags=['Admin - Users'])
class UserViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Users within the caller's scope. Only roles that may manage users have access.
    """
    permission_classes = [IsAuthenticated, CanManageUsers]
    parser_classes = [JSONParser]
    serializer_class = UserSerializer
    filterset_class = UserFilter
    search_fields = ['first_name', 'last_name', 'email']
    ordering_fields = ['created_at', 'last_name', 'email']

    def get_queryset(self):
        scope = get_request_scope(self.request)
        queryset = User.objects.select_related('organization', 'branch')
        if has_capability(scope.user_role, Capabilities.MANAGE_ORGANIZATIONS):
            return queryset.order_by('-created_at')
        return scope_queryset(queryset, scope)

    @extend_schema(
        summary="List Users",
        parameters=[
            OpenApiParameter(name='search', description='Search by name or email'),
            OpenApiParameter(name='role', description='Filter by role'),
            OpenApiParameter(name='is_active', description='Filter by active status', type=bool),
        ],
        responses={200: UserSerializer(many=True)},
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(
        summary="Assign Organization and Branch",
        description="Move a user into an organization and optionally a branch, optionally changing their role.",
        request=AssignOrgBranchSerializer,
        responses={200: UserSerializer},
    )
    @action(detail=True, methods=['post'], url_path='assign-org-branch')
    def assign_org_branch(self, request, pk=None):
        user = get_object_or_not_found(User.objects.all(), pk, 'User not found.')
        serializer = AssignOrgBranchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.assign_org_branch(
            user,
            serializer.validated_data['organization'],
            serializer.validated_data.get('branch'),
            serializer.validated_data.get('role'),
            get_request_scope(request),
        )
        return Response({
            'success': True,
            'message': 'User assignment updated successfully',
            'data': UserSerializer(user).data,
        })
