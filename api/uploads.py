import io
import logging
import os
import time

from django.conf import settings
from docx import Document as DocxDocument
from pptx import Presentation
from pypdf import PdfReader

from .errors import ApiError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {'.jpeg', '.jpg', '.png', '.gif'}
IMAGE_MIME_TYPES = {'image/jpeg', 'image/jpg', 'image/png', 'image/gif'}
DOCUMENT_EXTENSIONS = {'.pdf', '.doc', '.docx', '.pptx', '.txt', '.md'}


def _check_size(upload):
    if upload.size > settings.UPLOAD_MAX_BYTES:
        raise ApiError(f'File too large (max {settings.UPLOAD_MAX_BYTES // (1024 * 1024)}MB)', 400)


def _store(upload, fieldname, ext):
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    filename = f"{fieldname}-{int(time.time() * 1000)}{ext}"
    path = os.path.join(settings.UPLOAD_DIR, filename)
    with open(path, 'wb') as out:
        for chunk in upload.chunks():
            out.write(chunk)
    logger.info("Stored upload %s (%s bytes)", filename, upload.size)
    return f"uploads/{filename}"


def save_image(upload, fieldname):
    """Store an image upload (jpeg/jpg/png/gif up to the size limit) and return its relative path."""
    ext = os.path.splitext(upload.name)[1].lower()
    if ext not in IMAGE_EXTENSIONS or (upload.content_type or '').lower() not in IMAGE_MIME_TYPES:
        raise ApiError('Error: Images Only!', 400)
    _check_size(upload)
    return _store(upload, fieldname, ext)


def save_document(upload, fieldname):
    ext = os.path.splitext(upload.name)[1].lower()
    if ext not in DOCUMENT_EXTENSIONS and ext not in IMAGE_EXTENSIONS:
        raise ApiError('Unsupported file type', 400)
    _check_size(upload)
    return _store(upload, fieldname, ext)


def extract_text(upload):
    """Plain text of an uploaded syllabus (pdf, docx, pptx or text)."""
    _check_size(upload)
    name = upload.name.lower()
    content = upload.read()
    try:
        if name.endswith('.pdf'):
            reader = PdfReader(io.BytesIO(content))
            return "\n".join(page.extract_text() or "" for page in reader.pages)
        if name.endswith('.docx'):
            doc = DocxDocument(io.BytesIO(content))
            return "\n".join(para.text for para in doc.paragraphs)
        if name.endswith('.pptx'):
            prs = Presentation(io.BytesIO(content))
            texts = []
            for slide in prs.slides:
                for shape in slide.shapes:
                    if hasattr(shape, "text"):
                        texts.append(shape.text)
            return "\n".join(texts)
    except Exception as e:
        logger.warning("Could not parse %s: %s", upload.name, e)
        raise ApiError(f'Could not read {upload.name}', 400)
    return content.decode('utf-8', errors='ignore')
