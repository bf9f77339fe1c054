from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.parsers import JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from authentication.scope import get_request_scope
from core.serializers.branch_serializers import BranchSerializer, BranchWriteSerializer
from core.serializers.organization_serializers import (
    OrganizationSerializer,
    CreateOrganizationSerializer,
    OrganizationStatsSerializer,
)
from core.services.branch_service import BranchService
from core.services.organization_service import OrganizationService
from core.utils.responses import success_response


@extend_schema(tags=['Organization'])
class OrganizationViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated, ]
    parser_classes = [JSONParser]

    @extend_schema(
        summary="List Organizations",
        description="Platform administrators see every organization; everyone else sees their own.",
        parameters=[
            OpenApiParameter(name='active_only', type=OpenApiTypes.BOOL, location=OpenApiParameter.QUERY,
                             required=False),
        ],
        responses={200: OrganizationSerializer(many=True)},
    )
    def list(self, request):
        active_only = request.query_params.get('active_only', '').lower() == 'true'
        queryset = OrganizationService.list_for_scope(get_request_scope(request), active_only=active_only)
        return Response(OrganizationSerializer(queryset, many=True).data)

    @extend_schema(
        summary="Get Organization Details",
        responses={200: OrganizationSerializer},
    )
    def retrieve(self, request, pk=None):
        organization = OrganizationService.get_for_scope(pk, get_request_scope(request))
        return Response(OrganizationSerializer(organization).data)

    @extend_schema(
        summary="Create Organization",
        request=CreateOrganizationSerializer,
        responses={201: OrganizationSerializer, 409: OpenApiTypes.OBJECT},
    )
    def create(self, request):
        serializer = CreateOrganizationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        organization = OrganizationService.create(serializer.validated_data, get_request_scope(request))
        return success_response(
            OrganizationSerializer(organization).data,
            message='Organization created successfully',
            status_code=status.HTTP_201_CREATED,
        )

    @extend_schema(
        summary="Update Organization Details",
        request=CreateOrganizationSerializer,
        responses={200: OrganizationSerializer, 409: OpenApiTypes.OBJECT},
    )
    def update(self, request, pk=None, partial=False):
        scope = get_request_scope(request)
        organization = OrganizationService.get_for_scope(pk, scope)
        serializer = CreateOrganizationSerializer(organization, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        organization = OrganizationService.update(organization, serializer.validated_data, scope)
        return success_response(OrganizationSerializer(organization).data, message='Organization updated successfully')

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk, partial=True)

    @extend_schema(
        summary="Delete Organization",
        description="Delete an organization. The `policy` query parameter overrides the configured "
                    "deletion policy (cascade, reject or orphan).",
        parameters=[
            OpenApiParameter(name='policy', type=OpenApiTypes.STR, location=OpenApiParameter.QUERY,
                             required=False, enum=['cascade', 'reject', 'orphan']),
        ],
        responses={200: OpenApiTypes.OBJECT, 409: OpenApiTypes.OBJECT},
    )
    def destroy(self, request, pk=None):
        scope = get_request_scope(request)
        organization = OrganizationService.get_for_scope(pk, scope)
        affected = OrganizationService.delete(organization, scope, policy=_policy_param(request))
        return success_response(affected, message='Organization deleted successfully')

    @extend_schema(
        summary="Organization Statistics",
        responses={200: OrganizationStatsSerializer},
    )
    @action(detail=True, methods=['get'])
    def stats(self, request, pk=None):
        organization = OrganizationService.get_for_scope(pk, get_request_scope(request))
        return Response(OrganizationService.stats(organization))

    @extend_schema(summary="Reactivate Organization", request=None, responses={200: OrganizationSerializer})
    @action(detail=True, methods=['post'])
    def activate(self, request, pk=None):
        return self._set_active(request, pk, True)

    @extend_schema(summary="Suspend Organization", request=None, responses={200: OrganizationSerializer})
    @action(detail=True, methods=['post'])
    def deactivate(self, request, pk=None):
        return self._set_active(request, pk, False)

    def _set_active(self, request, pk, is_active):
        scope = get_request_scope(request)
        organization = OrganizationService.get_for_scope(pk, scope)
        organization = OrganizationService.set_active(organization, is_active, scope)
        return success_response(
            OrganizationSerializer(organization).data,
            message=f"Organization {'activated' if is_active else 'deactivated'} successfully",
        )

    @extend_schema(
        methods=['get'],
        summary="List Organization Branches",
        parameters=[
            OpenApiParameter(name='active_only', type=OpenApiTypes.BOOL, location=OpenApiParameter.QUERY,
                             required=False),
        ],
        responses={200: BranchSerializer(many=True)},
    )
    @extend_schema(
        methods=['post'],
        summary="Create Branch",
        request=BranchWriteSerializer,
        responses={201: BranchSerializer, 409: OpenApiTypes.OBJECT},
    )
    @action(detail=True, methods=['get', 'post'])
    def branches(self, request, pk=None):
        scope = get_request_scope(request)
        if request.method == 'GET':
            active_only = request.query_params.get('active_only', '').lower() == 'true'
            queryset = BranchService.list_for_organization(pk, scope, active_only=active_only)
            return Response(BranchSerializer(queryset, many=True).data)

        organization = OrganizationService.get_for_scope(pk, scope)
        serializer = BranchWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        branch = BranchService.create(organization, serializer.validated_data, scope)
        return success_response(
            BranchSerializer(branch).data,
            message='Branch created successfully',
            status_code=status.HTTP_201_CREATED,
        )


def _policy_param(request):
    return request.query_params.get('policy') or None
