import json
import os
import tempfile

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.http import StreamingHttpResponse
from loguru import logger
from rest_framework import status
from rest_framework.response import Response

from utils.exceptions import TransientError

from .pipeline import ImportStructureError

NDJSON_CONTENT_TYPE = 'application/x-ndjson'


class ImportStream:
    """
    Iterator of newline-delimited JSON lines for StreamingHttpResponse.

    Django calls close() once the response is finished or the client has
    gone away. Any rows not yet processed are processed then, without
    output, and the uploaded file is cleaned up.
    """

    def __init__(self, importer):
        self.importer = importer
        self._events = importer.run()
        self._closed = False

    def __iter__(self):
        return self

    def __next__(self):
        event = next(self._events)
        return (json.dumps(event, cls=DjangoJSONEncoder) + '\n').encode('utf-8')

    def close(self):
        if self._closed:
            return
        self._closed = True

        drained = 0
        for _ in self._events:
            drained += 1
        if drained:
            logger.warning(
                f"{self.importer.entity} import: client disconnected, "
                f"{drained} events processed without a listener"
            )
        self.importer.close()


def save_upload(upload):
    """Write an uploaded file to IMPORT_UPLOAD_DIR and return its path"""
    upload_dir = settings.IMPORT_UPLOAD_DIR
    suffix = os.path.splitext(upload.name or '')[1] or '.xlsx'
    try:
        os.makedirs(upload_dir, exist_ok=True)
        fd, path = tempfile.mkstemp(prefix='import-', suffix=suffix, dir=upload_dir)
        with os.fdopen(fd, 'wb') as destination:
            for chunk in upload.chunks():
                destination.write(chunk)
    except OSError as exc:
        logger.error(f"Could not store uploaded file {upload.name}: {exc}")
        raise TransientError('Could not store the uploaded file, please retry')
    return path


def streaming_import_response(request, importer_class):
    """
    Validate the uploaded spreadsheet and stream the import as NDJSON.

    Structural problems (no file, unreadable workbook, missing required
    columns) are answered with a plain 400 before any row is processed.
    """
    upload = request.FILES.get('file')
    if upload is None:
        return Response({'message': 'No file uploaded'}, status=status.HTTP_400_BAD_REQUEST)

    path = save_upload(upload)
    importer = importer_class(path, user=request.user)
    try:
        importer.open()
    except ImportStructureError as exc:
        importer.close()
        return Response({'message': str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    except Exception:
        importer.close()
        raise

    response = StreamingHttpResponse(ImportStream(importer), content_type=NDJSON_CONTENT_TYPE)
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'
    return response
