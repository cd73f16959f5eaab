"""
Scan endpoint.

Receives scans from business-side scanners and runs them through the
dispatcher.

Flow:
    1. Parses the JSON body
    2. Calls dispatcher.dispatch() with REMOTE_ADDR as source address
    3. Maps the terminal state to an HTTP status
"""

import json
import logging
import time

from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from scanman.exceptions import ScanmanError, TransientStoreError
from scanman.models import ScanState
from scanman.services import dispatcher

logger = logging.getLogger(__name__)

STATUS_BY_STATE = {
    ScanState.SUCCESS: 200,
    ScanState.RATE_LIMITED: 429,
    ScanState.INVALID: 422,
    ScanState.FAILED: 409,
}


@method_decorator(csrf_exempt, name="dispatch")
class ScanView(View):
    """
    POST endpoint for scans.

    Expects a JSON body:
        {
            "code_type": "CUSTOMER_CARD",
            "scanner_business_id": 7,
            "payload": {...} or "<scanned text>",
            "customer_ref": 42,      (optional)
            "program_ref": 3,        (optional)
            "promo_ref": 11          (optional)
        }
    """

    def post(self, request):
        try:
            data = json.loads(request.body)
        except (json.JSONDecodeError, ValueError):
            return JsonResponse({"error": "Invalid JSON"}, status=400)
        if not isinstance(data, dict):
            return JsonResponse({"error": "Expected a JSON object"}, status=400)

        code_type = data.get("code_type")
        if not code_type or not isinstance(code_type, str):
            return JsonResponse({"error": "code_type is required"}, status=400)
        if data.get("payload") in (None, ""):
            return JsonResponse({"error": "payload is required"}, status=400)

        outcome = dispatcher.dispatch(
            code_type,
            data.get("scanner_business_id"),
            data["payload"],
            source_address=request.META.get("REMOTE_ADDR", ""),
            customer_ref=data.get("customer_ref"),
            program_ref=data.get("program_ref"),
            promo_ref=data.get("promo_ref"),
        )

        status = STATUS_BY_STATE.get(outcome.state, 500)
        if outcome.state == ScanState.FAILED:
            if isinstance(outcome.error, TransientStoreError):
                status = 503
            elif not isinstance(outcome.error, ScanmanError):
                status = 500

        body = outcome.as_dict()
        if status == 500:
            logger.error("Scan request failed internally (scan %s)", body.get("scan_id"))
            body["message"] = "Internal error"

        response = JsonResponse(body, status=status)
        if outcome.state == ScanState.RATE_LIMITED and outcome.reset_at:
            response["Retry-After"] = str(max(1, int(outcome.reset_at - time.time())))
        return response
