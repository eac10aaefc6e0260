from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from rest_framework import serializers

from .models import Teacher


class TeacherSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username')
    email = serializers.EmailField(source='user.email', allow_blank=True, required=False)
    first_name = serializers.CharField(source='user.first_name', allow_blank=True, required=False)
    last_name = serializers.CharField(source='user.last_name', allow_blank=True, required=False)
    password = serializers.CharField(write_only=True, source='user.password', required=False)
    display_name = serializers.CharField(read_only=True)
    is_self = serializers.SerializerMethodField()

    class Meta:
        model = Teacher
        fields = [
            'id',
            'username',
            'email',
            'first_name',
            'last_name',
            'display_name',
            'institution',
            'is_admin_teacher',
            'password',
            'is_self',
        ]

    def get_is_self(self, obj):
        request = self.context.get('request')
        user = getattr(request, 'user', None)
        if not user or not user.is_authenticated:
            return False
        return obj.user_id == user.id

    def validate_is_admin_teacher(self, value):
        request = self.context.get('request')
        user = getattr(request, 'user', None)
        if value and not (user and (user.is_superuser or getattr(getattr(user, 'teacher', None), 'is_admin_teacher', False))):
            raise serializers.ValidationError('Only admin teachers can grant admin rights.')
        return value

    def create(self, validated_data):
        user_data = validated_data.pop('user')
        password = user_data.pop('password', None)
        UserModel = get_user_model()
        try:
            with transaction.atomic():
                user = UserModel.objects.create(**user_data)
                if password:
                    user.set_password(password)
                    user.save()
                return Teacher.objects.create(user=user, **validated_data)
        except IntegrityError as exc:
            if 'username' in str(exc):
                raise serializers.ValidationError(
                    {'username': ['This username is already taken. Please choose another one.']}
                ) from exc
            raise serializers.ValidationError({'detail': 'Unable to create teacher. Please try again.'}) from exc

    def update(self, instance, validated_data):
        user_data = validated_data.pop('user', {})
        for attr, value in user_data.items():
            if attr == 'password' and value:
                instance.user.set_password(value)
            elif attr in ['username', 'email', 'first_name', 'last_name']:
                setattr(instance.user, attr, value)
        instance.user.save()
        return super().update(instance, validated_data)
