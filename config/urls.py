"""
URL configuration for the task tracker.

Error taxonomy (mapped here for every router):
- ValidationError -> 400
- Unauthenticated -> 401, Forbidden -> 403, NotFound -> 404 (raised as HttpError)
- anything else   -> 500, logged, opaque body
"""
import logging

from django.contrib import admin
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.urls import path, re_path
from django.views.static import serve
from ninja import NinjaAPI
from ninja.errors import HttpError, ValidationError as SchemaValidationError

from config.storage import is_s3_enabled

logger = logging.getLogger(__name__)

api = NinjaAPI(
    title="Task Tracker API",
    version="1.0.0",
    description="Tasks, assignees and attachments with role-based access",
    docs_url="/docs",
)

from apps.identity.api import auth_router, users_router
from apps.tasks.api import router as tasks_router

api.add_router("/auth", auth_router)
api.add_router("/users", users_router)
api.add_router("/tasks", tasks_router)


# =============================================================================
# Exception Handlers
# =============================================================================

@api.exception_handler(HttpError)
def http_error(request, exc: HttpError):
    return api.create_response(request, {"message": str(exc)}, status=exc.status_code)


@api.exception_handler(SchemaValidationError)
def schema_validation_error(request, exc: SchemaValidationError):
    return api.create_response(request, {"errors": exc.errors}, status=400)


@api.exception_handler(DjangoValidationError)
def validation_error(request, exc: DjangoValidationError):
    if hasattr(exc, 'error_dict'):
        errors = exc.message_dict
        message = next(iter(errors.values()))[0]
    else:
        errors = {}
        message = exc.messages[0]
    return api.create_response(request, {"message": message, "errors": errors}, status=400)


@api.exception_handler(Exception)
def server_error(request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.path}: {exc}")
    return api.create_response(request, {"message": "Server error"}, status=500)


urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', api.urls),
]

# Stored attachments are served from the fixed uploads path when kept on local disk
def serve_upload(request, path):
    return serve(request, path, document_root=settings.MEDIA_ROOT)


if not is_s3_enabled():
    media_prefix = settings.MEDIA_URL.lstrip('/')
    urlpatterns += [
        re_path(rf'^{media_prefix}(?P<path>.*)$', serve_upload),
    ]
