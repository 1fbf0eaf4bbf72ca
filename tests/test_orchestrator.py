import httpx
import pytest

from contract_runner import (
    CaseStatus,
    CollectingReporter,
    Reporter,
    Suite,
    SuiteRunner,
    Transport,
    ValueStore,
    check_order,
    spec,
)


class Router:
    """MockTransport handler answering from a {(method, path): response} table."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def __call__(self, req: httpx.Request) -> httpx.Response:
        self.calls.append((req.method, req.url.path))
        route = self.routes.get((req.method, req.url.path))
        if route is None:
            return httpx.Response(404, text="Not Found")
        if isinstance(route, Exception):
            raise route
        return route


class ExplodingReporter(Reporter):
    def suite_started(self, suite_name):
        raise RuntimeError("boom")

    def after_case(self, suite_name, result):
        raise RuntimeError("boom")

    def end(self, suite_result):
        raise RuntimeError("boom")


class BrokenTransport(Transport):
    def send(self, request):
        raise RuntimeError("socket on fire")


AUTH_SCHEMA = {"type": "object", "properties": {"token": {"type": "string"}}, "required": ["token"]}


def auth_setup():
    return (
        spec("auth")
        .post("/auth")
        .with_json({"username": "admin", "password": "password123"})
        .expect_status(200)
        .expect_json_schema(AUTH_SCHEMA)
        .stores("authToken", "token")
        .build()
    )


def make_runner(mock_transport, settings, routes, reporters=None, **kwargs):
    router = Router(routes)
    runner = SuiteRunner(
        mock_transport(router),
        reporters=reporters if reporters is not None else [CollectingReporter()],
        settings=settings,
        **kwargs,
    )
    return runner, router


def test_unresolved_reference_fails_without_sending(mock_transport, settings):
    runner, router = make_runner(mock_transport, settings, {})
    suite = Suite(
        name="orphan",
        cases=[spec("get booking").get("/booking/{id}").with_path_params(id="$S{bookingId}").expect_status(200).build()],
    )

    result = runner.run(suite)

    [case] = result.results
    assert case.status == CaseStatus.FAIL
    assert case.failure_kinds() == ["UnresolvedReferenceError"]
    assert case.failures[0].details == {"key": "bookingId"}
    assert router.calls == []


def test_setup_failure_skips_every_case_and_still_flushes(mock_transport, settings):
    reporter = CollectingReporter()
    routes = {("POST", "/auth"): httpx.Response(200, json={"reason": "Bad credentials"})}
    runner, router = make_runner(mock_transport, settings, routes, reporters=[reporter])
    suite = Suite(
        name="bookings",
        setup=auth_setup(),
        cases=[
            spec("create").post("/booking").with_json({}).expect_status(200).build(),
            spec("ping").get("/ping").expect_status(201).build(),
        ],
    )

    result = runner.run(suite)

    assert router.calls == [("POST", "/auth")]
    assert result.fatal.kind == "SetupFailed"
    assert result.setup.status == CaseStatus.FAIL
    assert result.setup.failure_kinds() == ["SchemaViolation", "CaptureFieldMissing"]
    assert [r.status for r in result.results] == [CaseStatus.SKIPPED, CaseStatus.SKIPPED]
    assert not result.passed
    assert reporter.suites == [result]
    assert result.finished_at is not None
    assert [r.status for r in reporter.cases] == [CaseStatus.SKIPPED, CaseStatus.SKIPPED]


def test_setup_capture_feeds_cases(mock_transport, settings):
    seen = {}

    def handler(req):
        if req.url.path == "/auth":
            return httpx.Response(200, json={"token": "abc123"})
        seen["cookie"] = req.headers.get("cookie")
        return httpx.Response(201, text="Created")

    runner = SuiteRunner(mock_transport(handler), reporters=[], settings=settings)
    suite = Suite(
        name="auth then delete",
        setup=auth_setup(),
        cases=[
            spec("delete").delete("/booking/1").with_cookies("token", "$S{authToken}").expect_status(201).build(),
        ],
    )

    result = runner.run(suite)

    assert result.passed
    assert seen["cookie"] == "token=abc123"


def test_spec_build_error_aborts_remaining_cases(mock_transport, settings):
    routes = {("GET", "/ping"): httpx.Response(201, text="Created")}
    runner, router = make_runner(mock_transport, settings, routes)
    suite = Suite(
        name="broken",
        cases=[
            spec("ping").get("/ping").expect_status(201).build(),
            spec("no id").get("/booking/{id}").expect_status(200).build(),
            spec("ping again").get("/ping").expect_status(201).build(),
        ],
    )

    result = runner.run(suite)

    assert [r.status for r in result.results] == [CaseStatus.PASS, CaseStatus.ERROR, CaseStatus.SKIPPED]
    assert result.result("no id").failure_kinds() == ["SpecBuildError"]
    assert result.fatal.kind == "SpecBuildError"
    assert router.calls == [("GET", "/ping")]


def test_spec_build_error_wins_over_missing_store_keys(mock_transport, settings):
    runner, router = make_runner(mock_transport, settings, {})
    suite = Suite(
        name="broken and short",
        cases=[
            spec("no id").get("/booking/{id}").with_cookies("token", "$S{authToken}").expect_status(200).build(),
            spec("ping").get("/ping").expect_status(201).build(),
        ],
    )

    result = runner.run(suite)

    assert result.result("no id").status == CaseStatus.ERROR
    assert result.result("no id").failure_kinds() == ["SpecBuildError"]
    assert result.fatal.kind == "SpecBuildError"
    assert result.result("ping").status == CaseStatus.SKIPPED
    assert router.calls == []


def test_failed_capture_only_breaks_dependents(mock_transport, settings):
    routes = {
        ("POST", "/booking"): httpx.Response(500, text="Internal Server Error"),
        ("GET", "/ping"): httpx.Response(201, text="Created"),
    }
    runner, _ = make_runner(mock_transport, settings, routes)
    suite = Suite(
        name="isolation",
        cases=[
            spec("create").post("/booking").with_json({"firstname": "Jim"}).expect_status(200)
            .stores("bookingId", "bookingid").build(),
            spec("ping").get("/ping").expect_status(201).build(),
            spec("get").get("/booking/{id}").with_path_params(id="$S{bookingId}").expect_status(200).build(),
        ],
    )

    result = runner.run(suite)

    assert result.result("create").failure_kinds() == ["StatusMismatch"]
    assert result.result("ping").passed
    assert result.result("get").failure_kinds() == ["UnresolvedReferenceError"]


def test_capture_field_missing_fails_case(mock_transport, settings):
    routes = {("POST", "/auth"): httpx.Response(200, json={"reason": "Bad credentials"})}
    runner, _ = make_runner(mock_transport, settings, routes)
    suite = Suite(
        name="capture",
        cases=[spec("auth").post("/auth").with_json({}).expect_status(200).stores("authToken", "token").build()],
    )

    [case] = runner.run(suite).results

    assert case.status == CaseStatus.FAIL
    assert case.failure_kinds() == ["CaptureFieldMissing"]


def test_timeout_is_fail_and_network_error_is_error(mock_transport, settings):
    routes = {
        ("GET", "/slow"): httpx.ReadTimeout("slow"),
        ("GET", "/down"): httpx.ConnectError("refused"),
    }
    runner, _ = make_runner(mock_transport, settings, routes)
    suite = Suite(
        name="network",
        cases=[
            spec("slow").get("/slow").expect_status(200).build(),
            spec("down").get("/down").expect_status(200).build(),
        ],
    )

    result = runner.run(suite)

    assert result.result("slow").status == CaseStatus.FAIL
    assert result.result("slow").failure_kinds() == ["RequestTimeout"]
    assert result.result("down").status == CaseStatus.ERROR
    assert result.result("down").failure_kinds() == ["TransportError"]


def test_unexpected_exception_is_error(settings):
    runner = SuiteRunner(BrokenTransport(), reporters=[], settings=settings)
    suite = Suite(name="broken transport", cases=[spec("ping").get("/ping").expect_status(201).build()])

    [case] = runner.run(suite).results

    assert case.status == CaseStatus.ERROR
    assert case.failure_kinds() == ["UnexpectedError"]


def test_reporter_errors_never_escape(mock_transport, settings):
    collecting = CollectingReporter()
    routes = {("GET", "/ping"): httpx.Response(201, text="Created")}
    runner, _ = make_runner(mock_transport, settings, routes, reporters=[ExplodingReporter(), collecting])
    suite = Suite(name="noisy", cases=[spec("ping").get("/ping").expect_status(201).build()])

    result = runner.run(suite)

    assert result.passed
    assert len(collecting.cases) == 1
    assert collecting.suites == [result]


def test_progress_events_and_stop(mock_transport, settings):
    events = []
    routes = {("GET", "/ping"): httpx.Response(201, text="Created")}

    def on_progress(event):
        events.append(event["event"])
        if event["event"] == "case_done":
            runner.stop()

    runner, router = make_runner(mock_transport, settings, routes, progress_cb=on_progress)
    suite = Suite(
        name="stoppable",
        cases=[spec("first").get("/ping").expect_status(201).build(), spec("second").get("/ping").expect_status(201).build()],
    )

    result = runner.run(suite)

    assert events == ["suite_start", "case_start", "case_done", "case_done", "suite_done"]
    assert [r.status for r in result.results] == [CaseStatus.PASS, CaseStatus.SKIPPED]
    assert len(router.calls) == 1


def test_each_suite_gets_a_fresh_store(mock_transport, settings):
    routes = {("POST", "/auth"): httpx.Response(200, json={"token": "abc"})}
    runner, _ = make_runner(mock_transport, settings, routes)
    producer = Suite(name="producer", cases=[auth_setup()])
    consumer = Suite(
        name="consumer",
        cases=[spec("uses token").get("/ping").with_cookies("token", "$S{authToken}").expect_status(201).build()],
    )

    first, second = runner.run_suites([producer, consumer])

    assert first.passed
    assert second.result("uses token").failure_kinds() == ["UnresolvedReferenceError"]


def test_explicit_store_is_used(mock_transport, settings):
    routes = {("GET", "/booking/5"): httpx.Response(200, json={"firstname": "Jim"})}
    runner, _ = make_runner(mock_transport, settings, routes)
    suite = Suite(
        name="seeded",
        cases=[
            spec("get").get("/booking/{id}").with_path_params(id="$S{bookingId}")
            .expect_status(200).expect_json_like({"firstname": "$S{name}"}).build(),
        ],
    )

    result = runner.run(suite, store=ValueStore({"bookingId": 5, "name": "Jim"}))

    assert result.passed


def test_check_order_reports_keys_nobody_captures():
    suite = Suite(
        name="order",
        setup=auth_setup(),
        cases=[
            spec("get").get("/booking/{id}").with_path_params(id="$S{bookingId}").build(),
            spec("create").post("/booking").stores("bookingId", "bookingid").build(),
            spec("delete").delete("/booking/{id}").with_path_params(id="$S{bookingId}")
            .with_cookies("token", "$S{authToken}").build(),
        ],
    )

    assert check_order(suite) == {"get": {"bookingId"}}


@pytest.mark.parametrize("status, kinds", [(201, []), (200, ["StatusMismatch"])])
def test_result_json_export(mock_transport, settings, status, kinds):
    routes = {("GET", "/ping"): httpx.Response(status, text="Created")}
    runner, _ = make_runner(mock_transport, settings, routes)
    result = runner.run(Suite(name="export", cases=[spec("ping").get("/ping").expect_status(201).build()]))

    data = result.to_dict()
    assert data["summary"]["total"] == 1
    assert [f["kind"] for f in data["results"][0]["failures"]] == kinds
    assert '"suite_name": "export"' in result.to_json()
