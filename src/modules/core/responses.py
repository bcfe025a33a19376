"""Response envelope used by every cart and checkout endpoint.

Shape: ``{"success": bool, "message": str, "data": ...}`` plus ``errors`` on
failures.  ``token`` is added by ``SessionTokenRelayMixin`` when the caller
presented a credential.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from rest_framework import status as http_status
from rest_framework.response import Response


def envelope(
    data: Any,
    message: str,
    *,
    success: bool = True,
    errors: Optional[List[Dict[str, str]]] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": success, "message": message, "data": data}
    if errors is not None and not success:
        body["errors"] = errors
    return body


def ok(data: Any, message: str, status: int = http_status.HTTP_200_OK) -> Response:
    return Response(envelope(data, message), status=status)
