from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.parsers import JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from authentication.scope import get_request_scope
from core.utils.responses import success_response
from courses.filters import CourseFilter
from courses.serializers.course_serializers import (
    CourseSerializer,
    CourseMaterialSerializer,
    ReorderMaterialsSerializer,
)
from courses.services.course_service import CourseService
from courses.services.material_service import MaterialService


def _bool_param(request, name):
    return request.query_params.get(name, '').lower() == 'true'


@extend_schema(tags=['Courses'])
class CourseViewSet(viewsets.ModelViewSet):
    permission_classes = [IsAuthenticated, ]
    parser_classes = [JSONParser]
    serializer_class = CourseSerializer
    filterset_class = CourseFilter
    search_fields = ['title', 'description']
    # sort_by / sort_order drive ordering instead of the generic ?ordering= parameter
    ordering_fields = []

    def get_queryset(self):
        return CourseService.list_for_scope(
            get_request_scope(self.request),
            sort_by=self.request.query_params.get('sort_by', 'created_at'),
            sort_order=self.request.query_params.get('sort_order', 'desc'),
        )

    def get_object(self):
        use_cache = self.request.method in ('GET', 'HEAD')
        return CourseService.get_for_scope(self.kwargs['pk'], get_request_scope(self.request), use_cache=use_cache)

    @extend_schema(
        summary="List Courses",
        parameters=[
            OpenApiParameter(name='title', description='Title contains'),
            OpenApiParameter(name='created_by', description='Creator user id'),
            OpenApiParameter(name='created_after', type=OpenApiTypes.DATETIME),
            OpenApiParameter(name='created_before', type=OpenApiTypes.DATETIME),
            OpenApiParameter(name='sort_by', enum=['title', 'created_at', 'updated_at']),
            OpenApiParameter(name='sort_order', enum=['asc', 'desc']),
        ],
        responses={200: CourseSerializer(many=True)},
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(summary="Create Course", responses={201: CourseSerializer})
    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        course = CourseService.create(serializer.validated_data, get_request_scope(request), request.user)
        return success_response(
            CourseSerializer(course).data,
            message='Course created successfully',
            status_code=status.HTTP_201_CREATED,
        )

    @extend_schema(summary="Update Course", responses={200: CourseSerializer})
    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        course = self.get_object()
        serializer = self.get_serializer(course, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        course = CourseService.update(course, serializer.validated_data, get_request_scope(request))
        return success_response(CourseSerializer(course).data, message='Course updated successfully')

    @extend_schema(summary="Delete Course", description="Soft delete: the course is marked deleted.")
    def destroy(self, request, *args, **kwargs):
        CourseService.delete(self.get_object(), get_request_scope(request))
        return success_response(message='Course deleted successfully')

    @extend_schema(
        methods=['get'],
        summary="List Course Materials",
        parameters=[
            OpenApiParameter(name='sort_by', enum=['title', 'created_at', 'sort_order']),
            OpenApiParameter(name='sort_order', enum=['asc', 'desc']),
            OpenApiParameter(name='include_inactive', type=OpenApiTypes.BOOL),
        ],
        responses={200: CourseMaterialSerializer(many=True)},
    )
    @extend_schema(
        methods=['post'],
        summary="Create Course Material",
        request=CourseMaterialSerializer,
        responses={201: CourseMaterialSerializer},
    )
    @action(detail=True, methods=['get', 'post'])
    def materials(self, request, pk=None):
        scope = get_request_scope(request)
        if request.method == 'GET':
            course = CourseService.get_for_scope(pk, scope)
            materials = MaterialService.list_by_course(
                course, scope,
                sort_by=request.query_params.get('sort_by', 'sort_order'),
                sort_order=request.query_params.get('sort_order', 'asc'),
                include_inactive=_bool_param(request, 'include_inactive'),
            )
            return Response({
                'success': True,
                'message': 'Course materials retrieved successfully',
                'data': {
                    'materials': CourseMaterialSerializer(materials, many=True).data,
                    'total': len(materials),
                    'course': {'id': str(course.id), 'title': course.title, 'description': course.description},
                },
            })

        course = CourseService.get_for_scope(pk, scope, use_cache=False)
        serializer = CourseMaterialSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        material = MaterialService.create(course, serializer.validated_data, scope, request.user)
        return success_response(
            CourseMaterialSerializer(material).data,
            message='Course material created successfully',
            status_code=status.HTTP_201_CREATED,
        )

    @extend_schema(
        summary="Reorder Course Materials",
        request=ReorderMaterialsSerializer,
        responses={200: OpenApiTypes.OBJECT, 409: OpenApiTypes.OBJECT},
    )
    @action(detail=True, methods=['post'], url_path='materials/reorder')
    def reorder_materials(self, request, pk=None):
        scope = get_request_scope(request)
        course = CourseService.get_for_scope(pk, scope, use_cache=False)
        serializer = ReorderMaterialsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        MaterialService.reorder(course, serializer.validated_data['materials'], scope, request.user)
        return success_response(message='Course materials reordered successfully')

    @extend_schema(
        summary="Count Course Materials",
        parameters=[OpenApiParameter(name='include_inactive', type=OpenApiTypes.BOOL)],
        responses={200: OpenApiTypes.OBJECT},
    )
    @action(detail=True, methods=['get'], url_path='materials/count')
    def count_materials(self, request, pk=None):
        scope = get_request_scope(request)
        course = CourseService.get_for_scope(pk, scope)
        count = MaterialService.count(course, scope, include_inactive=_bool_param(request, 'include_inactive'))
        return Response({'course_id': str(course.id), 'count': count})

    @extend_schema(
        summary="List Deleted Course Materials",
        description="Soft-deleted materials of a course. Content managers only.",
        responses={200: CourseMaterialSerializer(many=True)},
    )
    @action(detail=True, methods=['get'], url_path='materials/deleted')
    def deleted_materials(self, request, pk=None):
        scope = get_request_scope(request)
        course = CourseService.get_for_scope(pk, scope)
        return Response(CourseMaterialSerializer(MaterialService.list_deleted(course, scope), many=True).data)


@extend_schema(tags=['Course Materials'])
class CourseMaterialViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated, ]
    parser_classes = [JSONParser]

    @extend_schema(summary="Get Course Material", responses={200: CourseMaterialSerializer})
    def retrieve(self, request, pk=None):
        material = MaterialService.get_for_scope(pk, get_request_scope(request))
        return Response(CourseMaterialSerializer(material).data)

    @extend_schema(summary="Update Course Material", request=CourseMaterialSerializer,
                   responses={200: CourseMaterialSerializer})
    def update(self, request, pk=None, partial=False):
        scope = get_request_scope(request)
        material = MaterialService.get_for_update(pk, scope)
        serializer = CourseMaterialSerializer(material, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        material = MaterialService.update(material, serializer.validated_data, scope, request.user)
        return success_response(CourseMaterialSerializer(material).data, message='Course material updated successfully')

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk, partial=True)

    @extend_schema(summary="Delete Course Material", description="Permanently removes the material.")
    def destroy(self, request, pk=None):
        scope = get_request_scope(request)
        MaterialService.delete(MaterialService.get_for_update(pk, scope), scope)
        return success_response(message='Course material deleted successfully')

    @extend_schema(summary="Soft Delete Course Material", request=None, responses={200: CourseMaterialSerializer})
    @action(detail=True, methods=['post'], url_path='soft-delete')
    def soft_delete(self, request, pk=None):
        scope = get_request_scope(request)
        material = MaterialService.soft_delete(MaterialService.get_for_update(pk, scope), scope, request.user)
        return success_response(CourseMaterialSerializer(material).data, message='Course material deleted successfully')

    @extend_schema(summary="Restore Course Material", request=None, responses={200: CourseMaterialSerializer})
    @action(detail=True, methods=['post'])
    def restore(self, request, pk=None):
        scope = get_request_scope(request)
        material = MaterialService.restore(MaterialService.get_for_update(pk, scope), scope, request.user)
        return success_response(CourseMaterialSerializer(material).data, message='Course material restored successfully')
