# backend/users/serializers.py
from rest_framework import serializers
from django.contrib.auth import get_user_model, authenticate
from django.utils.translation import gettext_lazy as _

CustomUser = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """Data user untuk halaman profil dan daftar user (admin)."""
    full_name = serializers.SerializerMethodField()
    role_display = serializers.CharField(source='get_role_display', read_only=True)

    class Meta:
        model = CustomUser
        fields = (
            'id', 'email', 'first_name', 'last_name', 'full_name',
            'role', 'role_display', 'unit_kerja', 'is_active',
        )
        read_only_fields = ('email', 'role', 'role_display')

    def get_full_name(self, obj):
        return obj.get_full_name()


class BasicUserSerializer(serializers.ModelSerializer):
    """Serializer minimal untuk info user di relasi."""
    class Meta:
        model = CustomUser
        fields = ('id', 'email', 'first_name', 'last_name', 'unit_kerja')


class CustomAuthTokenSerializer(serializers.Serializer):
    """Login memakai email dan password."""
    email = serializers.EmailField(label=_("Email"), write_only=True)
    password = serializers.CharField(
        label=_("Password"),
        style={'input_type': 'password'},
        trim_whitespace=False,
        write_only=True,
    )

    def validate(self, attrs):
        email = attrs.get('email')
        password = attrs.get('password')

        user = authenticate(request=self.context.get('request'), email=email, password=password)
        if not user:
            # authenticate() mengembalikan None juga untuk user non-aktif
            inactive = CustomUser.objects.filter(email__iexact=email, is_active=False).exists()
            if inactive:
                raise serializers.ValidationError(_('Akun pengguna tidak aktif.'), code='authorization')
            raise serializers.ValidationError(
                _('Tidak dapat login dengan kredensial yang diberikan.'), code='authorization'
            )

        attrs['user'] = user
        return attrs
