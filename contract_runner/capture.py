# contract_runner/capture.py
"""
Capture Engine: copies response fields into the value store.

Sources:
    "bookingid", "booking.firstname", "[0].bookingid"  JSON path into the body
    "header.Set-Cookie"                                  response header
    "$status"                                            status code
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List

from contract_runner.errors import CaptureFieldMissing, ExpectationFailure
from contract_runner.expectations import status_failed
from contract_runner.jsonpath import MISSING, select
from contract_runner.types import CaptureRule, Response
from contract_runner.value_store import ValueStore, is_sensitive_key

logger = logging.getLogger(__name__)


def extract(resp: Response, source: str) -> Any:
    """Value named by `source`, or MISSING."""
    if source == "$status":
        return resp.status_code

    if source.startswith("header."):
        value = resp.header(source[len("header."):])
        return MISSING if value is None else value

    if not resp.is_json:
        return MISSING
    value = select(resp.body, source)
    # null counts as nothing to capture
    return MISSING if value is None else value


class CaptureEngine:
    """Applies capture rules after a response has been validated."""

    def apply(
        self,
        rules: Iterable[CaptureRule],
        resp: Response,
        store: ValueStore,
        failures: Iterable[ExpectationFailure] = (),
    ) -> List[str]:
        """Write every rule's value into the store and return the keys written.

        Skipped entirely when the response failed its status expectation.

        Raises:
            CaptureFieldMissing: a source resolves to nothing.
        """
        rules = list(rules)
        if not rules:
            return []

        if status_failed(failures):
            logger.info("Skipping %d capture(s): status expectation failed", len(rules))
            return []

        written: List[str] = []
        for rule in rules:
            value = extract(resp, rule.source)
            if value is MISSING:
                raise CaptureFieldMissing(rule.source, store_key=rule.store_key)
            store.set(rule.store_key, value)
            written.append(rule.store_key)
            shown = "[REDACTED]" if is_sensitive_key(rule.store_key) else repr(value)
            logger.debug("Captured %s = %s (from %s)", rule.store_key, shown, rule.source)

        return written
