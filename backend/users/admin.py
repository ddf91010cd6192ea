# backend/users/admin.py
from django.contrib import admin
from django.contrib.auth import get_user_model
from django import forms
from django.utils.translation import gettext_lazy as _

CustomUser = get_user_model()


class CustomUserAdminForm(forms.ModelForm):
    password = forms.CharField(
        widget=forms.PasswordInput, required=False,
        help_text=_("Kosongkan jika tidak ingin mengubah password. Wajib diisi untuk user baru."),
    )
    password2 = forms.CharField(label=_("Password confirmation"), widget=forms.PasswordInput, required=False)

    class Meta:
        model = CustomUser
        fields = ('email', 'first_name', 'last_name', 'role', 'unit_kerja',
                  'is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')

    def clean(self):
        cleaned_data = super().clean()
        password = cleaned_data.get("password")
        password2 = cleaned_data.get("password2")
        is_new = not (self.instance and self.instance.pk)

        if is_new and not password:
            raise forms.ValidationError(_("Password wajib diisi untuk user baru."), code='password_required')
        if password and password != password2:
            raise forms.ValidationError(_("The two password fields didn't match."), code='password_mismatch')
        if not password:
            # Edit tanpa password baru: jangan timpa hash yang lama
            cleaned_data.pop('password', None)
        return cleaned_data


@admin.register(CustomUser)
class CustomUserAdmin(admin.ModelAdmin):
    form = CustomUserAdminForm

    list_display = ('email', 'first_name', 'last_name', 'role', 'unit_kerja', 'is_staff', 'is_active')
    list_filter = ('role', 'is_staff', 'is_active')
    search_fields = ('email', 'first_name', 'last_name', 'unit_kerja')
    ordering = ('email',)

    fieldsets = (
        (None, {'fields': ('email', 'password', 'password2')}),
        (_('Personal info'), {'fields': ('first_name', 'last_name')}),
        (_('Unit Kerja'), {'fields': ('role', 'unit_kerja')}),
        (_('Permissions'), {'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
    )

    def save_model(self, request, obj, form, change):
        # Field password di form berisi plain text, harus di-hash sebelum disimpan
        password = form.cleaned_data.get('password')
        if password:
            obj.set_password(password)
        super().save_model(request, obj, form, change)
