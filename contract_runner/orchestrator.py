# contract_runner/orchestrator.py
"""
Test Orchestrator

Runs one suite as ``Init → Setup → [TestCase]* → Teardown → Done``:

- Setup runs first; any failure is fatal and no test case executes.
- Test cases run strictly in declaration order, one at a time, sharing the
  suite's ValueStore. A failing case never aborts its siblings; a later case
  that needs a value the failed case should have captured fails with
  UnresolvedReferenceError.
- SpecBuildError is fatal to the suite; the remaining cases are skipped.
- Teardown (reporter flush) runs on every exit path and never raises.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from contract_runner.capture import CaptureEngine
from contract_runner.config import Settings, get_settings
from contract_runner.errors import (
    CaptureFieldMissing,
    FailureDetail,
    RequestTimeout,
    SpecBuildError,
    TransportError,
    UnresolvedReferenceError,
    unexpected_failure,
)
from contract_runner.expectations import ExpectationEngine, resolve_expectations
from contract_runner.reporter import LoggingReporter, Reporter
from contract_runner.request_builder import build_request, check_spec, merge_headers
from contract_runner.transport import Transport
from contract_runner.types import CaseStatus, Suite, SuiteResult, TestCase, TestResult
from contract_runner.value_store import ValueStore

logger = logging.getLogger(__name__)


def check_order(suite: Suite) -> Dict[str, Set[str]]:
    """Cases that read keys no earlier case (or the setup) captures.

    Ordering is an authoring contract; this only reports, it never reorders.
    """
    known: Set[str] = set(suite.setup.captured_keys) if suite.setup else set()
    problems: Dict[str, Set[str]] = {}
    for case in suite.cases:
        missing = set(case.setup_deps) - known
        if missing:
            problems[case.name] = missing
        known |= case.captured_keys
    return problems


class SuiteRunner:
    """Sequential runner for contract suites."""

    def __init__(
        self,
        transport: Transport,
        reporters: Optional[Iterable[Reporter]] = None,
        settings: Optional[Settings] = None,
        progress_cb: Optional[Callable[[Dict[str, Any]], None]] = None,
        expectation_engine: Optional[ExpectationEngine] = None,
        capture_engine: Optional[CaptureEngine] = None,
    ):
        self.transport = transport
        self.reporters: List[Reporter] = list(reporters) if reporters is not None else [LoggingReporter()]
        self.settings = settings or get_settings()
        self.expectations = expectation_engine or ExpectationEngine()
        self.captures = capture_engine or CaptureEngine()
        self._progress_cb = progress_cb
        self._stop = False

    # ==================== Public API ====================

    def stop(self) -> None:
        """Request runner to stop after the current case"""
        self._stop = True

    def run_suites(self, suites: Iterable[Suite]) -> List[SuiteResult]:
        """Run suites one after another, each with its own fresh store."""
        return [self.run(suite) for suite in suites]

    def run(self, suite: Suite, store: Optional[ValueStore] = None) -> SuiteResult:
        store = store if store is not None else ValueStore()
        result = SuiteResult(suite_name=suite.name)
        start = time.perf_counter()

        self._emit("suite_start", suite=suite.name, cases=len(suite.cases))
        for reporter in self.reporters:
            self._safe_hook(reporter.suite_started, suite.name)

        try:
            for case_name, missing in check_order(suite).items():
                logger.warning(
                    f"⚠️ '{case_name}' reads {sorted(missing)} but no earlier case captures it"
                )

            if suite.setup is not None and not self._run_setup(suite, store, result):
                return result

            for idx, case in enumerate(suite.cases):
                if self._stop:
                    self._skip_rest(suite, suite.cases[idx:], result, "stop requested")
                    break

                self._emit("case_start", suite=suite.name, name=case.name)
                try:
                    case_result = self.run_case(case, store, suite)
                except SpecBuildError as e:
                    logger.error(f"💥 {case.name}: {e}")
                    case_result = TestResult(name=case.name, status=CaseStatus.ERROR, failures=[e.to_detail()])
                    self._record(suite, result, case_result)
                    result.fatal = e.to_detail()
                    self._skip_rest(suite, suite.cases[idx + 1:], result, "suite aborted: invalid request spec")
                    break

                self._record(suite, result, case_result)

            return result

        finally:
            result.finished_at = datetime.now().isoformat()
            self._teardown(suite, store, result, time.perf_counter() - start)

    def run_case(self, case: TestCase, store: ValueStore, suite: Optional[Suite] = None) -> TestResult:
        """Execute one case; only SpecBuildError escapes."""
        try:
            return self._execute(case, store, suite)
        except SpecBuildError:
            raise
        except Exception as e:
            logger.exception(f"❌ {case.name}: unexpected error")
            return TestResult(name=case.name, status=CaseStatus.ERROR, failures=[unexpected_failure(e)])

    # ==================== Internals ====================

    def _execute(self, case: TestCase, store: ValueStore, suite: Optional[Suite]) -> TestResult:
        # template errors outrank missing store keys
        check_spec(case.spec)

        missing = sorted(k for k in case.setup_deps if not store.has(k))
        if missing:
            return TestResult(
                name=case.name,
                status=CaseStatus.FAIL,
                failures=[UnresolvedReferenceError(k).to_detail() for k in missing],
            )

        base_url = (suite.base_url if suite and suite.base_url else self.settings.base_url)
        headers = merge_headers(self.settings.default_headers, suite.default_headers if suite else None)
        timeout = suite.timeout_s if suite and suite.timeout_s is not None else self.settings.request_timeout_s

        try:
            request = build_request(case.spec, store, base_url, headers, timeout)
            expectations = resolve_expectations(case.expectations, store)
        except UnresolvedReferenceError as e:
            return TestResult(name=case.name, status=CaseStatus.FAIL, failures=[e.to_detail()])

        out = TestResult(name=case.name, status=CaseStatus.PASS, method=request.method, url=request.url)

        try:
            resp = self.transport.send(request)
        except RequestTimeout as e:
            out.status = CaseStatus.FAIL
            out.failures.append(e.to_detail())
            return out
        except TransportError as e:
            out.status = CaseStatus.ERROR
            out.failures.append(e.to_detail())
            return out

        out.status_code = resp.status_code
        out.elapsed_ms = resp.elapsed_ms

        failures = self.expectations.evaluate(expectations, resp)
        out.failures.extend(f.to_detail() for f in failures)

        try:
            self.captures.apply(case.captures, resp, store, failures)
        except CaptureFieldMissing as e:
            out.failures.append(e.to_detail())

        if out.failures:
            out.status = CaseStatus.FAIL
        return out

    def _run_setup(self, suite: Suite, store: ValueStore, result: SuiteResult) -> bool:
        setup = suite.setup
        self._emit("setup_start", suite=suite.name, name=setup.name)
        try:
            setup_result = self.run_case(setup, store, suite)
        except SpecBuildError as e:
            setup_result = TestResult(name=setup.name, status=CaseStatus.ERROR, failures=[e.to_detail()])
        result.setup = setup_result

        if setup_result.passed:
            logger.info(f"✅ setup '{setup.name}' done")
            return True

        logger.error(f"💥 setup '{setup.name}' failed; skipping {len(suite.cases)} case(s)")
        result.fatal = FailureDetail(
            kind="SetupFailed",
            message=f"setup '{setup.name}' failed: " + "; ".join(str(f) for f in setup_result.failures),
            details={"case": setup.name, "failures": [f.to_dict() for f in setup_result.failures]},
        )
        self._skip_rest(suite, suite.cases, result, "setup failed")
        return False

    def _skip_rest(self, suite: Suite, cases: List[TestCase], result: SuiteResult, reason: str) -> None:
        for case in cases:
            self._record(suite, result, TestResult(
                name=case.name,
                status=CaseStatus.SKIPPED,
                failures=[FailureDetail(kind="Skipped", message=reason)],
            ))

    def _record(self, suite: Suite, result: SuiteResult, case_result: TestResult) -> None:
        result.results.append(case_result)
        for reporter in self.reporters:
            self._safe_hook(reporter.after_case, suite.name, case_result)
        self._emit(
            "case_done",
            suite=suite.name,
            name=case_result.name,
            status=case_result.status.value,
            failures=len(case_result.failures),
        )

    def _teardown(self, suite: Suite, store: ValueStore, result: SuiteResult, duration_s: float) -> None:
        logger.debug("Store at teardown: %s", store.export(redact=self.settings.redact_exports))
        for reporter in self.reporters:
            self._safe_hook(reporter.end, result)
        self._emit("suite_done", suite=suite.name, duration_s=round(duration_s, 2), **result.summary())

    def _safe_hook(self, hook: Callable[..., None], *args: Any) -> None:
        try:
            hook(*args)
        except Exception:
            logger.error("Reporter hook %s failed", getattr(hook, "__qualname__", hook), exc_info=True)

    def _emit(self, event: str, **data):
        """Emit progress event"""
        if self._progress_cb:
            try:
                self._progress_cb({"event": event, **data})
            except Exception:
                logger.debug("progress_cb failed", exc_info=True)
