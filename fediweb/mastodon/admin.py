from django.contrib import admin

from .models import RegisteredApp, Session


@admin.register(RegisteredApp)
class RegisteredAppAdmin(admin.ModelAdmin):
    search_fields = 'instance_url', 'client_id'
    list_display = 'instance_url', 'client_id', 'created'
    exclude = 'client_secret',
    readonly_fields = 'created', 'modified'


@admin.register(Session)
class SessionAdmin(admin.ModelAdmin):
    search_fields = 'instance_url',
    list_display = 'instance_url', 'is_active', 'created', 'modified'
    list_filter = 'instance_url',
    exclude = 'access_token', 'csrf_token'
    readonly_fields = 'id', 'created', 'modified'

    @admin.display(boolean=True, description='active')
    def is_active(self, obj):
        return obj.is_active
