from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.models import Teacher
from accounts.permissions import IsAdminTeacher, IsSelfOrAdmin
from accounts.serializers import TeacherSerializer


class TeacherViewSet(viewsets.ModelViewSet):
    serializer_class = TeacherSerializer
    queryset = Teacher.objects.select_related('user').all()

    def get_permissions(self):
        if self.action in ('create', 'list', 'destroy'):
            return [IsAdminTeacher()]
        if self.action == 'me':
            return [IsAuthenticated()]
        return [IsSelfOrAdmin()]

    @action(detail=False, methods=['get', 'put', 'patch'])
    def me(self, request):
        teacher = getattr(request.user, 'teacher', None)
        if not teacher:
            return Response({'detail': 'Not a teacher'}, status=status.HTTP_403_FORBIDDEN)

        if request.method == 'GET':
            serializer = self.get_serializer(teacher)
            return Response(serializer.data)

        serializer = self.get_serializer(teacher, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)

    def perform_destroy(self, instance):
        if not self.request.user.is_superuser:
            raise PermissionDenied('Only admins can delete teachers.')
        super().perform_destroy(instance)
