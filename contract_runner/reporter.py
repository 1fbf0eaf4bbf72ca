# contract_runner/reporter.py
"""
Reporter hooks.

The orchestrator calls ``after_case`` once per test case and ``end`` once
per suite during teardown. ``end`` is a flush: it must not assert.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List

from contract_runner.types import CaseStatus, SuiteResult, TestResult

logger = logging.getLogger(__name__)

_ICONS = {
    CaseStatus.PASS: "✅",
    CaseStatus.FAIL: "❌",
    CaseStatus.ERROR: "💥",
    CaseStatus.SKIPPED: "⏭️",
}


class Reporter(ABC):
    """Receives per-case results and a final flush."""

    def suite_started(self, suite_name: str) -> None:
        pass

    @abstractmethod
    def after_case(self, suite_name: str, result: TestResult) -> None:
        pass

    @abstractmethod
    def end(self, suite_result: SuiteResult) -> None:
        pass


class LoggingReporter(Reporter):
    """Writes one log line per case and a summary line per suite."""

    def __init__(self, log: logging.Logger = logger):
        self.log = log

    def suite_started(self, suite_name: str) -> None:
        self.log.info(f"🧪 Suite '{suite_name}' started")

    def after_case(self, suite_name: str, result: TestResult) -> None:
        icon = _ICONS.get(result.status, "")
        where = f" ({result.method} {result.url} → {result.status_code})" if result.method else ""
        if result.passed:
            self.log.info(f"{icon} {result.name}{where}")
            return
        self.log.warning(f"{icon} {result.name}{where}")
        for failure in result.failures:
            self.log.warning(f"    {failure}")

    def end(self, suite_result: SuiteResult) -> None:
        s = suite_result.summary()
        msg = (
            f"Suite '{suite_result.suite_name}': {s['passed']}/{s['total']} passed, "
            f"{s['failed']} failed, {s['errors']} errors, {s['skipped']} skipped"
        )
        if suite_result.fatal:
            self.log.error(f"💥 {msg}, fatal: {suite_result.fatal}")
        elif suite_result.passed:
            self.log.info(f"✅ {msg}")
        else:
            self.log.warning(f"❌ {msg}")


class CollectingReporter(Reporter):
    """Keeps everything in memory; useful for assertions and exports."""

    def __init__(self):
        self.started: List[str] = []
        self.cases: List[TestResult] = []
        self.suites: List[SuiteResult] = []

    def suite_started(self, suite_name: str) -> None:
        self.started.append(suite_name)

    def after_case(self, suite_name: str, result: TestResult) -> None:
        self.cases.append(result)

    def end(self, suite_result: SuiteResult) -> None:
        self.suites.append(suite_result)
