from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.parsers import JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from assessments.serializers.assessment_serializers import (
    TestSerializer,
    CreateTestSerializer,
    InviteUsersSerializer,
    TestInvitationSerializer,
    RespondInvitationSerializer,
    TrainingProgressSerializer,
    RecordProgressSerializer,
)
from assessments.services import progress_service
from assessments.services.invitation_service import InvitationService
from assessments.services.test_service import TestService
from authentication.permissions import HasCapability
from authentication.scope import get_request_scope
from core.utils.responses import success_response
from core.utils.roles import Capabilities
from courses.services.course_service import CourseService

CanManageContent = HasCapability.for_capability(Capabilities.MANAGE_CONTENT)


@extend_schema(tags=['Tests'])
class TestViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated, ]
    parser_classes = [JSONParser]

    @extend_schema(
        summary="List Tests",
        parameters=[
            OpenApiParameter(name='course', type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name='active_only', type=OpenApiTypes.BOOL, location=OpenApiParameter.QUERY,
                             required=False),
        ],
        responses={200: TestSerializer(many=True)},
    )
    def list(self, request):
        queryset = TestService.list_for_scope(
            get_request_scope(request),
            course_id=request.query_params.get('course'),
            active_only=request.query_params.get('active_only', '').lower() == 'true',
        )
        return Response(TestSerializer(queryset, many=True).data)

    @extend_schema(summary="Create Test", request=CreateTestSerializer, responses={201: TestSerializer})
    def create(self, request):
        scope = get_request_scope(request)
        serializer = CreateTestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        course = CourseService.get_for_scope(data.pop('course_id'), scope, use_cache=False)
        test = TestService.create(course, data, scope, request.user)
        return success_response(TestSerializer(test).data, message='Test created successfully',
                                status_code=status.HTTP_201_CREATED)

    @extend_schema(summary="Get Test", responses={200: TestSerializer})
    def retrieve(self, request, pk=None):
        return Response(TestSerializer(TestService.get_for_scope(pk, get_request_scope(request))).data)

    @extend_schema(summary="Update Test", request=TestSerializer, responses={200: TestSerializer})
    def update(self, request, pk=None, partial=False):
        scope = get_request_scope(request)
        test = TestService.get_for_scope(pk, scope)
        serializer = TestSerializer(test, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        test = TestService.update(test, serializer.validated_data, scope)
        return success_response(TestSerializer(test).data, message='Test updated successfully')

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk, partial=True)

    @extend_schema(summary="Delete Test")
    def destroy(self, request, pk=None):
        scope = get_request_scope(request)
        TestService.delete(TestService.get_for_scope(pk, scope), scope)
        return success_response(message='Test deleted successfully')

    @extend_schema(summary="Activate Test", request=None, responses={200: TestSerializer})
    @action(detail=True, methods=['post'])
    def activate(self, request, pk=None):
        return self._set_active(request, pk, True)

    @extend_schema(summary="Deactivate Test", request=None, responses={200: TestSerializer})
    @action(detail=True, methods=['post'])
    def deactivate(self, request, pk=None):
        return self._set_active(request, pk, False)

    def _set_active(self, request, pk, is_active):
        scope = get_request_scope(request)
        test = TestService.set_active(TestService.get_for_scope(pk, scope), is_active, scope)
        return success_response(TestSerializer(test).data,
                                message=f"Test {'activated' if is_active else 'deactivated'} successfully")

    @extend_schema(
        summary="Invite Users to Test",
        request=InviteUsersSerializer,
        responses={201: TestInvitationSerializer(many=True)},
    )
    @action(detail=True, methods=['post'])
    def invite(self, request, pk=None):
        scope = get_request_scope(request)
        test = TestService.get_for_scope(pk, scope)
        serializer = InviteUsersSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        invitations, skipped = InvitationService.invite(
            test,
            serializer.validated_data['user_ids'],
            scope,
            request.user,
            message=serializer.validated_data['message'],
            expires_at=serializer.validated_data['expires_at'],
        )
        return success_response(
            {
                'invitations': TestInvitationSerializer(invitations, many=True).data,
                'skipped_user_ids': skipped,
            },
            message=f"{len(invitations)} invitation(s) sent",
            status_code=status.HTTP_201_CREATED,
        )


@extend_schema(tags=['Test Invitations'])
class TestInvitationViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated, ]
    parser_classes = [JSONParser]

    def get_permissions(self):
        if self.action == 'list':
            return [IsAuthenticated(), CanManageContent()]
        return super().get_permissions()

    @extend_schema(
        summary="List Invitations",
        description="Invitations within the caller's scope. Content managers only.",
        parameters=[
            OpenApiParameter(name='test', type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name='status', type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
        ],
        responses={200: TestInvitationSerializer(many=True)},
    )
    def list(self, request):
        queryset = InvitationService.list_for_scope(
            get_request_scope(request),
            test_id=request.query_params.get('test'),
            status=request.query_params.get('status'),
        )
        return Response(TestInvitationSerializer(queryset, many=True).data)

    @extend_schema(summary="My Invitations", responses={200: TestInvitationSerializer(many=True)})
    @action(detail=False, methods=['get'])
    def mine(self, request):
        queryset = InvitationService.list_for_user(request.user, status=request.query_params.get('status'))
        return Response(TestInvitationSerializer(queryset, many=True).data)

    @extend_schema(
        summary="Respond to Invitation",
        request=RespondInvitationSerializer,
        responses={200: TestInvitationSerializer, 409: OpenApiTypes.OBJECT},
    )
    @action(detail=True, methods=['post'])
    def respond(self, request, pk=None):
        invitation = InvitationService.get_for_scope(pk, get_request_scope(request))
        serializer = RespondInvitationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        invitation = InvitationService.respond(
            invitation,
            serializer.validated_data['accept'],
            request.user,
            notes=serializer.validated_data['notes'],
        )
        return success_response(TestInvitationSerializer(invitation).data, message='Response recorded')


@extend_schema(tags=['Training Progress'])
class TrainingProgressViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated, ]
    parser_classes = [JSONParser]

    def get_permissions(self):
        if self.action == 'list':
            return [IsAuthenticated(), CanManageContent()]
        return super().get_permissions()

    @extend_schema(
        summary="List Training Progress",
        description="Progress of every learner within the caller's scope. Content managers only.",
        parameters=[
            OpenApiParameter(name='course', type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name='user', type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
        ],
        responses={200: TrainingProgressSerializer(many=True)},
    )
    def list(self, request):
        queryset = progress_service.list_for_scope(
            get_request_scope(request),
            course_id=request.query_params.get('course'),
            user_id=request.query_params.get('user'),
        )
        return Response(TrainingProgressSerializer(queryset, many=True).data)

    @extend_schema(
        summary="Record Training Progress",
        description="Create or update the caller's progress on a course or one of its tests.",
        request=RecordProgressSerializer,
        responses={200: TrainingProgressSerializer},
    )
    def create(self, request):
        scope = get_request_scope(request)
        serializer = RecordProgressSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        course = CourseService.get_for_scope(data.pop('course_id'), scope, use_cache=False)
        test_id = data.pop('test_id')
        test = TestService.get_for_scope(test_id, scope) if test_id else None
        progress = progress_service.record_progress(request.user, course, test, data, scope)
        return success_response(TrainingProgressSerializer(progress).data, message='Progress recorded')

    @extend_schema(summary="My Training Progress", responses={200: TrainingProgressSerializer(many=True)})
    @action(detail=False, methods=['get'])
    def mine(self, request):
        return Response(TrainingProgressSerializer(progress_service.list_for_user(request.user), many=True).data)
