from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework import viewsets
from rest_framework.parsers import JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from authentication.scope import get_request_scope
from core.serializers.branch_serializers import BranchSerializer, BranchWriteSerializer
from core.services.branch_service import BranchService
from core.utils.responses import success_response


@extend_schema(tags=['Branch'])
class BranchViewSet(viewsets.ViewSet):
    """
    Branches visible to the caller. Branch-bound users see their own branch,
    organization-level users see every branch of their organization.
    Branches are created under /core/organizations/{id}/branches.
    """
    permission_classes = [IsAuthenticated, ]
    parser_classes = [JSONParser]

    @extend_schema(summary="List Branches", responses={200: BranchSerializer(many=True)})
    def list(self, request):
        queryset = BranchService.list_for_scope(get_request_scope(request))
        return Response(BranchSerializer(queryset, many=True).data)

    @extend_schema(summary="Get Branch Details", responses={200: BranchSerializer})
    def retrieve(self, request, pk=None):
        branch = BranchService.get_for_scope(pk, get_request_scope(request))
        return Response(BranchSerializer(branch).data)

    @extend_schema(
        summary="Update Branch",
        request=BranchWriteSerializer,
        responses={200: BranchSerializer, 409: OpenApiTypes.OBJECT},
    )
    def update(self, request, pk=None, partial=False):
        scope = get_request_scope(request)
        branch = BranchService.get_for_scope(pk, scope)
        serializer = BranchWriteSerializer(branch, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        branch = BranchService.update(branch, serializer.validated_data, scope)
        return success_response(BranchSerializer(branch).data, message='Branch updated successfully')

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk, partial=True)

    @extend_schema(
        summary="Delete Branch",
        parameters=[
            OpenApiParameter(name='policy', type=OpenApiTypes.STR, location=OpenApiParameter.QUERY,
                             required=False, enum=['cascade', 'reject', 'orphan']),
        ],
        responses={200: OpenApiTypes.OBJECT, 409: OpenApiTypes.OBJECT},
    )
    def destroy(self, request, pk=None):
        scope = get_request_scope(request)
        branch = BranchService.get_for_scope(pk, scope)
        affected = BranchService.delete(branch, scope, policy=request.query_params.get('policy') or None)
        return success_response(affected, message='Branch deleted successfully')
