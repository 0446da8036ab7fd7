"""
Image hosting on Cloudinary.

Images arrive from the admin as base64 (with or without a `data:` prefix),
are uploaded under `<CLOUDINARY_FOLDER>/images/<products|variations>` with a
1200x1200 limit transformation, and are referenced by `public_id`.
"""

import logging
from typing import Dict, Iterable, List, Optional

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from django.conf import settings

from apps.core.exceptions import StorageError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_FOLDERS = ('products', 'variations')

# First characters of the base64 encoding of each format's magic bytes
BASE64_SIGNATURES = {
    '/9j/': 'image/jpeg',
    'iVBORw0KGgo': 'image/png',
    'R0lGOD': 'image/gif',
    'UklGR': 'image/webp',
}

UPLOAD_TRANSFORMATION = [
    {'width': 1200, 'height': 1200, 'crop': 'limit'},
    {'quality': 'auto:good', 'fetch_format': 'auto'},
]

_configured = False


def _configure():
    global _configured
    if _configured:
        return
    missing = [
        name for name in ('CLOUDINARY_CLOUD_NAME', 'CLOUDINARY_API_KEY', 'CLOUDINARY_API_SECRET')
        if not getattr(settings, name, '')
    ]
    if missing:
        raise StorageError(f"Cloudinary não configurado: {', '.join(missing)}")
    cloudinary.config(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
        secure=True,
    )
    _configured = True


def detect_mime_type(data: str) -> Optional[str]:
    """Guess the image MIME type of raw base64 data."""
    for signature, mime_type in BASE64_SIGNATURES.items():
        if data.startswith(signature):
            return mime_type
    return None


def to_data_uri(data: str) -> str:
    """Normalize base64 input into a `data:` URI accepted by the uploader."""
    data = (data or '').strip()
    if not data:
        raise ValidationError('Imagem vazia', field='image')
    if data.startswith('data:'):
        header = data.split(',', 1)[0]
        if not header.startswith('data:image/'):
            raise ValidationError('Arquivo não é uma imagem', field='image')
        return data

    mime_type = detect_mime_type(data)
    if not mime_type:
        raise ValidationError('Formato de imagem não suportado', field='image')
    return f'data:{mime_type};base64,{data}'


def upload_image(data: str, folder: str = 'products', filename: Optional[str] = None) -> Dict:
    if folder not in ALLOWED_FOLDERS:
        raise ValidationError(f'Pasta inválida: {folder}', field='folder')

    data_uri = to_data_uri(data)
    _configure()

    options = {
        'folder': f'{settings.CLOUDINARY_FOLDER}/images/{folder}',
        'resource_type': 'image',
        'transformation': UPLOAD_TRANSFORMATION,
    }
    if filename:
        options['public_id'] = filename.rsplit('.', 1)[0]
        options['unique_filename'] = True

    try:
        result = cloudinary.uploader.upload(data_uri, **options)
    except CloudinaryError as e:
        logger.exception("Falha no upload para o Cloudinary")
        raise StorageError(f'Erro ao enviar imagem: {e}')

    logger.info(f"Imagem enviada ao Cloudinary: {result.get('public_id')}")
    return {
        'public_id': result['public_id'],
        'url': result.get('url', result['secure_url']),
        'secure_url': result['secure_url'],
        'width': result.get('width'),
        'height': result.get('height'),
        'format': result.get('format', ''),
        'bytes': result.get('bytes'),
    }


def delete_image(public_id: str) -> bool:
    if not public_id:
        raise ValidationError('public_id obrigatório', field='public_id')
    _configure()
    try:
        result = cloudinary.uploader.destroy(public_id, resource_type='image')
    except CloudinaryError as e:
        logger.exception(f"Falha ao deletar imagem {public_id} do Cloudinary")
        raise StorageError(f'Erro ao deletar imagem: {e}')

    deleted = result.get('result') == 'ok'
    logger.info(f"Imagem {public_id} removida do Cloudinary: {result.get('result')}")
    return deleted


def delete_images(public_ids: Iterable[str]) -> Dict[str, List[str]]:
    """Best-effort bulk cleanup. Failures are logged and reported, not raised."""
    report = {'deleted': [], 'failed': []}
    for public_id in public_ids:
        if not public_id:
            continue
        try:
            if delete_image(public_id):
                report['deleted'].append(public_id)
            else:
                report['failed'].append(public_id)
        except StorageError:
            report['failed'].append(public_id)
    return report
