"""
Payment evidence storage.

Evidence files go through Django's storage API so the object store (local
media, S3-compatible bucket, ...) is a settings decision.
"""
import logging
import os
import uuid

from django.core.files.storage import default_storage

from core.exceptions import EvidenceUploadFailed

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'.pdf', '.jpg', '.jpeg', '.png', '.webp'}


def evidence_path(bill, filename: str) -> str:
    """payment_evidence/<dormitory_id>/<bill_id>/<uuid><ext>"""
    ext = os.path.splitext(filename or '')[1].lower()
    return f"payment_evidence/{bill.dormitory_id}/{bill.id}/{uuid.uuid4().hex}{ext}"


class EvidenceStorage:
    """Uploads payment evidence and returns a retrievable URL"""

    def __init__(self, storage=None):
        self.storage = storage or default_storage

    def upload(self, bill, evidence) -> tuple:
        """
        Store ``evidence`` (a Django File / UploadedFile).

        Returns:
            (storage name, public URL)

        Raises:
            EvidenceUploadFailed: the file type is not allowed or storage failed
        """
        name = getattr(evidence, 'name', '') or ''
        ext = os.path.splitext(name)[1].lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise EvidenceUploadFailed(
                message=f"Unsupported evidence file type '{ext or name}'",
                code="UNSUPPORTED_EVIDENCE_TYPE",
                details={"allowed": sorted(ALLOWED_EXTENSIONS)}
            )
        try:
            stored_name = self.storage.save(evidence_path(bill, name), evidence)
            return stored_name, self.storage.url(stored_name)
        except Exception as e:
            logger.error(f"Evidence upload failed for bill {bill.id}: {e}", exc_info=True)
            raise EvidenceUploadFailed(details={"bill_id": bill.id}) from e

    def discard(self, stored_name: str) -> None:
        """Remove an upload whose payment was not recorded"""
        try:
            self.storage.delete(stored_name)
        except Exception as e:
            logger.error(f"Could not remove orphaned evidence {stored_name}: {e}", exc_info=True)
