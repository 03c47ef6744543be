"""Risk enrichment client.

Sends the immutable facts of a request to an external scoring service
and parses its advisory risk annotation. Failures never reach the
workflow: callers either get ``EnrichmentUnavailable`` or, through
``analyze_or_placeholder``, a degraded placeholder.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from flowtrack.core.config import Settings, get_settings
from flowtrack.schemas import Enrichment, RequestFacts, RiskLevel

logger = logging.getLogger(__name__)


PLACEHOLDER_ENRICHMENT = Enrichment(
    risk_score=50,
    risk_level=RiskLevel.MEDIUM,
    summary="Risk analysis unavailable. Proceed with standard review.",
    recommendation="Check customer credit history manually.",
)


class EnrichmentUnavailable(Exception):
    """Raised when the scoring service cannot produce an annotation."""


class RiskAnalyzer:
    """Client for the external risk scoring service."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the analyzer.

        Args:
            settings: Application settings; the cached settings when None
            transport: httpx transport override, used by tests
        """
        self.settings = settings or get_settings()
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return self.settings.enrichment_enabled

    def _build_payload(self, facts: RequestFacts) -> Dict[str, Any]:
        return {
            "referenceCode": facts.reference_code,
            "customerName": facts.customer_name,
            "territory": facts.territory,
            "weight": facts.weight,
            "destination": facts.destination,
            "submitterEmail": facts.submitter_email,
            "requestedPrice": facts.requested_price,
        }

    def analyze(self, facts: RequestFacts) -> Enrichment:
        """
        Score a request.

        Args:
            facts: Immutable facts of the request

        Returns:
            Parsed risk annotation

        Raises:
            EnrichmentUnavailable: If no endpoint is configured, the call
                fails, or the response is malformed
        """
        if not self.enabled:
            raise EnrichmentUnavailable("No enrichment endpoint configured")

        headers = {"Content-Type": "application/json"}
        if self.settings.enrichment_api_key:
            headers["Authorization"] = f"Bearer {self.settings.enrichment_api_key}"

        try:
            with httpx.Client(
                timeout=self.settings.enrichment_timeout,
                headers=headers,
                transport=self.transport,
            ) as client:
                response = client.post(self.settings.enrichment_url, json=self._build_payload(facts))
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Risk analysis request for {facts.reference_code} failed: {e}")
            raise EnrichmentUnavailable(str(e)) from e
        except ValueError as e:
            logger.warning(f"Risk analysis for {facts.reference_code} returned invalid JSON: {e}")
            raise EnrichmentUnavailable("Malformed response body") from e

        try:
            return Enrichment.model_validate(body)
        except ValidationError as e:
            logger.warning(f"Risk analysis for {facts.reference_code} returned an invalid annotation: {e}")
            raise EnrichmentUnavailable("Malformed risk annotation") from e

    def analyze_or_placeholder(self, facts: RequestFacts) -> Optional[Enrichment]:
        """
        Score a request, degrading instead of failing.

        Returns:
            The annotation; the placeholder on failure when fallback is
            enabled; None when scoring is disabled or fallback is off
        """
        if not self.enabled:
            return None
        try:
            return self.analyze(facts)
        except EnrichmentUnavailable:
            if self.settings.enrichment_fallback:
                logger.info(f"Using placeholder risk annotation for {facts.reference_code}")
                return PLACEHOLDER_ENRICHMENT.model_copy()
            return None
