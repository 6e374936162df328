"""
Entitlement middleware for protected pages.

Applies the access gate to configured path prefixes on every request:

    ENTITLEMENT_PROTECTED_PATHS = {
        "/dashboard/": "any_active_subscription",
        "/library/": "six_month_only",
        "/webinars/": "webinar_grant",   # /webinars/<id>/...
    }

The longest matching prefix wins. For ``webinar_grant`` prefixes the webinar
id is the first path segment after the prefix.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from django.conf import settings
from django.http import JsonResponse
from django.shortcuts import redirect

from dripaccess.entitlements.access import AccessDecision
from dripaccess.entitlements.access import AccessGate
from dripaccess.entitlements.access import RequiredCapability
from dripaccess.entitlements.constants import AccessReason
from dripaccess.entitlements.constants import CapabilityKind

if TYPE_CHECKING:
    from django.http import HttpRequest
    from django.http import HttpResponse

logger = logging.getLogger(__name__)

DENIAL_MESSAGES = {
    AccessReason.NEVER_SUBSCRIBED: "Choose a plan to unlock this content.",
    AccessReason.NO_ACTIVE_ENTITLEMENT: "Your plan has expired. Renew to continue.",
    AccessReason.REQUIRES_SIX_MONTH: "This content is part of the six-month plan.",
    AccessReason.NO_WEBINAR_GRANT: "Purchase this webinar to watch it.",
    AccessReason.STORAGE_UNAVAILABLE: "Access could not be checked. Try again.",
}


class EntitlementGateMiddleware:
    """
    Block users without the required entitlement from protected paths.

    - Web requests: redirect to the plans page (never subscribed) or the
      renew page (anything else); anonymous users go to the login page.
    - API requests: 402 Payment Required JSON carrying the decision reason.
      Anonymous API requests pass through so token authentication and the
      view's own permissions apply.

    This middleware should be added after AuthenticationMiddleware.
    """

    gate_class = AccessGate

    def __init__(self, get_response):
        self.get_response = get_response
        protected = getattr(settings, "ENTITLEMENT_PROTECTED_PATHS", {}) or {}
        # Longest prefix first so nested prefixes override their parents.
        self.protected_paths = sorted(
            ((prefix, CapabilityKind(kind)) for prefix, kind in protected.items()),
            key=lambda item: len(item[0]),
            reverse=True,
        )

    def __call__(self, request: HttpRequest) -> HttpResponse:
        match = self._match(request.path)
        if match is None:
            return self.get_response(request)

        if not request.user.is_authenticated:
            if self._is_api_request(request):
                return self.get_response(request)
            return redirect(
                f"{settings.LOGIN_URL}?{urlencode({'next': request.get_full_path()})}",
            )

        capability = self._capability_for(request.path, *match)
        if capability is None:
            return self.get_response(request)

        decision = self.gate_class().evaluate(request.user.pk, capability)
        if decision.allowed:
            request.access_decision = decision
            return self.get_response(request)

        logger.info(
            "Access denied for user=%s path=%s reason=%s",
            request.user.pk,
            request.path,
            decision.reason,
        )
        return self._block_request(request, decision)

    def _match(self, path: str) -> tuple[str, CapabilityKind] | None:
        for prefix, kind in self.protected_paths:
            if path.startswith(prefix):
                return prefix, kind
        return None

    def _capability_for(
        self,
        path: str,
        prefix: str,
        kind: CapabilityKind,
    ) -> RequiredCapability | None:
        if kind != CapabilityKind.WEBINAR_GRANT:
            return RequiredCapability(kind=kind)
        segment = path[len(prefix) :].strip("/").split("/", 1)[0]
        if not segment.isdigit():
            # Webinar index pages are not individually protected.
            return None
        return RequiredCapability.webinar(int(segment))

    def _is_api_request(self, request: HttpRequest) -> bool:
        return request.path.startswith("/api/")

    def _block_request(
        self,
        request: HttpRequest,
        decision: AccessDecision,
    ) -> HttpResponse:
        if self._is_api_request(request):
            return JsonResponse(
                {
                    "detail": DENIAL_MESSAGES.get(decision.reason, "Access denied."),
                    "code": "entitlement_required",
                    "reason": str(decision.reason),
                },
                status=HTTPStatus.PAYMENT_REQUIRED,
            )
        if decision.reason == AccessReason.NEVER_SUBSCRIBED:
            return redirect(settings.ENTITLEMENT_PLANS_URL)
        return redirect(settings.ENTITLEMENT_RENEW_URL)
