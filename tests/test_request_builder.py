import pytest

from contract_runner import (
    CaptureRule,
    JsonLike,
    Placeholder,
    SpecBuildError,
    StatusCode,
    UnresolvedReferenceError,
    ValueStore,
    build_request,
    spec,
)

BASE = "https://booker.example"


def test_builder_is_immutable():
    base = spec("base").get("/booking")
    a = base.with_headers("X-A", "1")
    b = base.with_headers("X-B", "2")
    assert base.headers == {}
    assert a.headers == {"X-A": "1"}
    assert b.headers == {"X-B": "2"}


def test_build_collects_expectations_captures_and_deps():
    case = (
        spec("update")
        .put("/booking/{id}")
        .with_path_params(id="$S{bookingId}")
        .with_cookies("token", "$S{authToken}")
        .expect_status(200)
        .expect_json_like({"firstname": "$S{name}"})
        .stores("lastName", "lastname")
        .depends_on("extra")
        .build()
    )
    assert case.name == "update"
    assert case.spec.method == "PUT"
    assert case.expectations[0] == StatusCode(200)
    assert isinstance(case.expectations[1], JsonLike)
    assert case.captures == (CaptureRule(source="lastname", store_key="lastName"),)
    assert case.setup_deps == {"bookingId", "authToken", "name", "extra"}
    assert case.expected_status == 200


def test_default_name_is_method_and_url():
    assert spec().delete("/booking/1").build().name == "DELETE /booking/1"


def test_path_params_substituted_and_quoted():
    store = ValueStore({"bookingId": 12})
    case = spec().get("/booking/{id}/notes/{note}").with_path_params(id="$S{bookingId}", note="a b/c").build()
    req = build_request(case.spec, store, BASE)
    assert req.url == f"{BASE}/booking/12/notes/a%20b%2Fc"


def test_missing_path_param_is_spec_build_error():
    case = spec().get("/booking/{id}").build()
    with pytest.raises(SpecBuildError):
        build_request(case.spec, ValueStore(), BASE)


def test_unresolved_placeholder_in_path_raises_unresolved_reference():
    case = spec().get("/booking/{id}").with_path_params(id=Placeholder("bookingId")).build()
    with pytest.raises(UnresolvedReferenceError):
        build_request(case.spec, ValueStore(), BASE)


def test_query_params_keep_insertion_order():
    store = ValueStore({"first": "Jim"})
    case = (
        spec()
        .get("/booking")
        .with_query_params(firstname="$S{first}", lastname="Brown")
        .with_query_params(checkin="2024-01-01", tag=["a", "b"], skip=None)
        .build()
    )
    req = build_request(case.spec, store, BASE)
    assert req.params == [
        ("firstname", "Jim"),
        ("lastname", "Brown"),
        ("checkin", "2024-01-01"),
        ("tag", "a"),
        ("tag", "b"),
    ]


def test_headers_override_defaults_case_insensitively():
    store = ValueStore({"authToken": "t0k"})
    case = (
        spec()
        .get("/booking")
        .with_headers({"accept": "text/plain"})
        .with_cookies("token", "$S{authToken}")
        .build()
    )
    req = build_request(case.spec, store, BASE, default_headers={"Accept": "application/json", "X-Suite": "1"})
    assert req.headers == {"X-Suite": "1", "accept": "text/plain", "Cookie": "token=t0k"}


def test_body_is_deep_resolved():
    store = ValueStore({"bookingId": 3, "name": "Sally"})
    case = spec().post("/notes").with_json({"booking": {"id": "$S{bookingId}"}, "who": ["$S{name}"]}).build()
    req = build_request(case.spec, store, BASE)
    assert req.json_body == {"booking": {"id": 3}, "who": ["Sally"]}


def test_relative_url_without_base_is_spec_build_error():
    case = spec().get("/ping").build()
    with pytest.raises(SpecBuildError):
        build_request(case.spec, ValueStore(), "")


def test_absolute_url_ignores_base():
    case = spec().get("https://other.example/ping").build()
    assert build_request(case.spec, ValueStore(), BASE).url == "https://other.example/ping"


def test_unknown_method_is_spec_build_error():
    case = spec().request("FETCH", "/ping").build()
    with pytest.raises(SpecBuildError):
        build_request(case.spec, ValueStore(), BASE)


def test_timeout_falls_back_to_default():
    plain = spec().get("/ping").build()
    tight = spec().get("/ping").with_timeout(2).build()
    assert build_request(plain.spec, ValueStore(), BASE, default_timeout_s=30).timeout_s == 30
    assert build_request(tight.spec, ValueStore(), BASE, default_timeout_s=30).timeout_s == 2.0
