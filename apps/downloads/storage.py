"""
Private file storage on Cloudflare R2 through its S3-compatible API.

Files are never public: buyers receive short-lived signed URLs.
"""

import logging
import re
import secrets
import string
import time
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings

from apps.core.exceptions import StorageError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[^a-zA-Z0-9.\-]')
_RANDOM_ALPHABET = string.ascii_lowercase + string.digits


def sanitize_filename(name: str) -> str:
    return _UNSAFE_CHARS.sub('_', name or 'arquivo.pdf')


def generate_file_key(original_name: str, product_id=None, now: Optional[float] = None) -> str:
    """
    pdfs/produto-<id>/<timestamp>-<rand6>-<sanitized>  (with a product)
    pdfs/<timestamp>-<rand6>-<sanitized>               (without)
    """
    timestamp = int((time.time() if now is None else now) * 1000)
    random_part = ''.join(secrets.choice(_RANDOM_ALPHABET) for _ in range(6))
    filename = f'{timestamp}-{random_part}-{sanitize_filename(original_name)}'
    if product_id:
        return f'pdfs/produto-{product_id}/{filename}'
    return f'pdfs/{filename}'


def is_valid_pdf(name: str, content_type: Optional[str] = None) -> bool:
    return content_type == 'application/pdf' or (name or '').lower().endswith('.pdf')


class R2Storage:
    """Thin wrapper over a boto3 S3 client pointed at the R2 endpoint."""

    def __init__(self, client, bucket: str):
        self.client = client
        self.bucket = bucket

    @classmethod
    def from_settings(cls):
        required = ('R2_ACCOUNT_ID', 'R2_ACCESS_KEY_ID', 'R2_SECRET_ACCESS_KEY')
        missing = [name for name in required if not getattr(settings, name, '')]
        if missing:
            raise StorageError(f"R2 não configurado: {', '.join(missing)}")

        client = boto3.client(
            's3',
            endpoint_url=f'https://{settings.R2_ACCOUNT_ID}.r2.cloudflarestorage.com',
            aws_access_key_id=settings.R2_ACCESS_KEY_ID,
            aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
            region_name=settings.R2_REGION,
            config=Config(signature_version='s3v4'),
        )
        return cls(client, settings.R2_BUCKET)

    def upload(self, key: str, body: bytes, content_type: str = 'application/pdf') -> str:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.exception(f"Falha ao enviar {key} para o R2")
            raise StorageError(f'Erro ao enviar arquivo: {e}')
        logger.info(f"Arquivo enviado ao R2: {key} ({len(body)} bytes)")
        return key

    def signed_url(self, key: str, expires_in: Optional[int] = None) -> str:
        expires_in = expires_in or settings.DOWNLOAD_LINK_TTL_SECONDS
        try:
            url = self.client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket, 'Key': key},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as e:
            logger.exception(f"Falha ao assinar URL para {key}")
            raise StorageError(f'Erro ao gerar link de download: {e}')
        logger.info(f"URL assinada gerada para {key} (expira em {expires_in}s)")
        return url

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.exception(f"Falha ao deletar {key} do R2")
            raise StorageError(f'Erro ao deletar arquivo: {e}')
        logger.info(f"Arquivo removido do R2: {key}")


_storage = None


def get_storage() -> R2Storage:
    global _storage
    if _storage is None:
        _storage = R2Storage.from_settings()
    return _storage


def reset_storage():
    global _storage
    _storage = None
