"""
Blob storage for uploaded payment documents.

The decision core only needs `save(data, filename, folder) -> path`;
LocalBlobStore keeps files on the local filesystem under the upload folder.
"""

import logging
import os
import uuid
from typing import Optional

from werkzeug.utils import secure_filename

from preconfirm.services.config import get_settings

logger = logging.getLogger(__name__)

DOCUMENTS_FOLDER = "payment-documents"


class BlobStore:
    """Storage collaborator interface"""

    def save(self, data: bytes, filename: str, folder: str = DOCUMENTS_FOLDER) -> str:
        raise NotImplementedError

    def delete(self, path: str) -> None:
        raise NotImplementedError


class LocalBlobStore(BlobStore):
    """Store blobs as files below a root directory"""

    def __init__(self, root: str):
        self.root = root

    def save(self, data: bytes, filename: str, folder: str = DOCUMENTS_FOLDER) -> str:
        """Write bytes to a unique file; returns the path relative to root"""
        safe_name = secure_filename(filename) or "upload"
        relative_path = os.path.join(folder, f"{uuid.uuid4().hex}_{safe_name}")
        full_path = os.path.join(self.root, relative_path)

        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, "wb") as f:
            f.write(data)

        logger.info(f"Stored {len(data)} bytes at {relative_path}")
        return relative_path

    def delete(self, path: str) -> None:
        full_path = os.path.join(self.root, path)
        if os.path.exists(full_path):
            os.remove(full_path)


def get_blob_store(root: Optional[str] = None) -> LocalBlobStore:
    return LocalBlobStore(root or get_settings().upload_folder)
