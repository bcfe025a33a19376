"""Payment-proof upload to Cloudinary.

Upload is blocking with a timeout (``UPSTREAM_TIMEOUT_SECONDS``).  Any failure
surfaces as ``PaymentProofUploadFailed`` (HTTP 502) before the sale is
created, so a retry is always safe.  A proof whose sale is then rejected is
discarded again.
"""

from __future__ import annotations

import re
from typing import Any, Optional, Protocol

import cloudinary
import cloudinary.uploader
import structlog
from django.conf import settings

from modules.checkout.exceptions import PaymentProofUploadFailed

logger = structlog.get_logger(__name__)

# .../upload/v123/payment-proofs/abc.png -> payment-proofs/abc
_PUBLIC_ID_RE = re.compile(r"/upload/(?:v\d+/)?(?P<public_id>[^?#]+?)(?:\.\w+)?(?:[?#].*)?$")


class PaymentProofStorage(Protocol):
    def upload(self, file: Any) -> str:
        """Store the file and return its public URL."""

    def discard(self, url: str) -> bool:
        """Best-effort removal of a stored file; never raises."""


class CloudinaryPaymentProofStorage:
    """Stores payment proofs in a Cloudinary folder."""

    def __init__(
        self,
        folder: Optional[str] = None,
        timeout: Optional[int] = None,
        config: Optional[dict] = None,
    ) -> None:
        self._folder = folder or settings.PAYMENT_PROOF_FOLDER
        self._timeout = timeout or settings.UPSTREAM_TIMEOUT_SECONDS
        self._config = config if config is not None else settings.CLOUDINARY

    def _is_configured(self) -> bool:
        return all(self._config.get(key) for key in ("cloud_name", "api_key", "api_secret"))

    def _configure(self) -> None:
        if not self._is_configured():
            raise PaymentProofUploadFailed("Payment proof storage is not configured.")
        cloudinary.config(secure=True, **self._config)

    def upload(self, file: Any) -> str:
        self._configure()
        try:
            result = cloudinary.uploader.upload(
                file,
                folder=self._folder,
                resource_type="image",
                timeout=self._timeout,
            )
        except Exception as exc:
            logger.error(
                "checkout.proof_upload_failed",
                folder=self._folder,
                error=str(exc),
            )
            raise PaymentProofUploadFailed() from exc

        url = result.get("secure_url") or result.get("url")
        if not url:
            raise PaymentProofUploadFailed("Payment proof storage returned no URL.")
        logger.info("checkout.proof_uploaded", public_id=result.get("public_id"))
        return url

    def discard(self, url: str) -> bool:
        """Delete a stored proof whose sale was never created."""
        match = _PUBLIC_ID_RE.search(url or "")
        if match is None or not self._is_configured():
            logger.warning("checkout.proof_discard_skipped", url=url)
            return False
        public_id = match.group("public_id")
        cloudinary.config(secure=True, **self._config)
        try:
            result = cloudinary.uploader.destroy(
                public_id, resource_type="image", timeout=self._timeout
            )
        except Exception:
            logger.exception("checkout.proof_discard_failed", public_id=public_id)
            return False
        deleted = result.get("result") == "ok"
        logger.info("checkout.proof_discarded", public_id=public_id, deleted=deleted)
        return deleted
