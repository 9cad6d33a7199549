import logging
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)


class MultipartPutMiddleware(MiddlewareMixin):
    """
    Populates request.POST / request.FILES for multipart PUT and PATCH.

    Django only parses form bodies for POST. Task updates arrive as
    multipart PUT (fields + documents), so the stream is parsed here the
    same way Django parses a POST: file parts are spooled by the upload
    handlers and only the non-file fields count against
    DATA_UPLOAD_MAX_MEMORY_SIZE. The raw body is never buffered, so
    request.body is unavailable afterwards.
    """

    METHODS = ('PUT', 'PATCH')

    def process_request(self, request):
        if request.method not in self.METHODS:
            return None
        if not request.content_type.startswith('multipart/form-data'):
            return None

        original_method = request.method
        request.method = 'POST'
        request.META['REQUEST_METHOD'] = 'POST'
        try:
            request._load_post_and_files()
        finally:
            request.META['REQUEST_METHOD'] = original_method
            request.method = original_method

        logger.debug(f"Parsed multipart {original_method} body for {request.path}")
        return None
