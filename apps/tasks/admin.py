from django.contrib import admin
from .models import Task, TaskAttachment


class TaskAttachmentInline(admin.TabularInline):
    model = TaskAttachment
    extra = 0
    fields = ['original_name', 'file', 'size', 'mimetype', 'position']
    readonly_fields = ['size', 'mimetype']


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['title', 'status', 'priority', 'due_date', 'assigned_to', 'created_at']
    list_filter = ['status', 'priority']
    search_fields = ['title', 'description']
    inlines = [TaskAttachmentInline]
