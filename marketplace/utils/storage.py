"""
Object Storage Signed URLs

FLOW OVERVIEW
- normalize_storage_key(url_or_path)
  • Strip the public-object URL prefix and a leading bucket segment to recover the object key.
- StorageSigner.create_signed_url(key, expires_in)
  • POST {STORAGE_URL}/storage/v1/object/sign/{bucket}/{key} → absolute signed URL.
  • Raises StorageError on any transport or payload problem.
- resolve_signed_url(url_or_path, expires_in=SHORT_EXPIRY)
  • normalize → sign → placeholder on any failure. Never raises.
"""

import logging
import re
from urllib.parse import quote

import requests
from flask import current_app

from .error_handlers import MarketplaceError

logger = logging.getLogger(__name__)

SHORT_EXPIRY = 60 * 60
LONG_EXPIRY = 60 * 60 * 24 * 365 * 100

_PUBLIC_PREFIX = re.compile(r'^https?://[^/]+/storage/v1/object/(?:public|sign)/')


class StorageError(MarketplaceError):
    """The object store could not produce a signed URL"""


def normalize_storage_key(url_or_path, bucket='images'):
    """
    Recover the object key from a stored image reference.

    Accepts bare keys ("products/a.jpg"), bucket-prefixed keys
    ("images/products/a.jpg") and fully-qualified public or signed URLs.
    Returns None when nothing usable remains.
    """
    if not url_or_path or not isinstance(url_or_path, str):
        return None

    path = url_or_path.strip()
    if path.startswith('http'):
        path = _PUBLIC_PREFIX.sub('', path)
        if path.startswith('http'):
            # Not one of ours; keep only the path component
            path = re.sub(r'^https?://[^/]*/?', '', path)

    # Drop any previous signature
    path = path.split('?', 1)[0].lstrip('/')

    prefix = f'{bucket}/'
    if path.startswith(prefix):
        path = path[len(prefix):]

    return path or None


class StorageSigner:
    """Thin client for the storage service's sign endpoint"""

    def __init__(self, base_url, service_key, bucket='images', timeout=5):
        self.base_url = base_url.rstrip('/')
        self.service_key = service_key
        self.bucket = bucket
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            base_url=config['STORAGE_URL'],
            service_key=config['STORAGE_SERVICE_KEY'],
            bucket=config['STORAGE_BUCKET'],
            timeout=config['STORAGE_TIMEOUT'],
        )

    def create_signed_url(self, key, expires_in=SHORT_EXPIRY):
        endpoint = f"{self.base_url}/storage/v1/object/sign/{self.bucket}/{quote(key)}"
        headers = {
            'Authorization': f'Bearer {self.service_key}',
            'apikey': self.service_key,
        }
        try:
            response = requests.post(endpoint, json={'expiresIn': int(expires_in)}, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise StorageError(f"Signed URL request failed for {key}: {e}") from e

        signed_path = None
        if isinstance(payload, dict):
            signed_path = payload.get('signedURL') or payload.get('signedUrl')
        if not isinstance(signed_path, str) or not signed_path:
            raise StorageError(f"Storage returned no signed URL for {key}")

        if signed_path.startswith('http'):
            return signed_path
        return f"{self.base_url}/storage/v1/{signed_path.lstrip('/')}"


def resolve_signed_url(url_or_path, expires_in=SHORT_EXPIRY, signer=None):
    """Return a signed URL for a stored image, or the configured placeholder."""
    config = current_app.config
    placeholder = config['STORAGE_PLACEHOLDER_URL']

    key = normalize_storage_key(url_or_path, config['STORAGE_BUCKET'])
    if not key:
        return placeholder

    signer = signer or StorageSigner.from_config(config)
    try:
        return signer.create_signed_url(key, expires_in)
    except StorageError as e:
        logger.warning(f"Signed URL alınırken hata: {e}")
        return placeholder
