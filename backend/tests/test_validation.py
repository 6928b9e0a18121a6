"""
Validator / sanitizer helpers attached to every request.
"""

from starlette.requests import Request

from pipeline.validation import Validator


def _request(query: bytes = b"", body=None, path_params=None) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "query_string": query,
        "headers": [],
        "path_params": path_params or {},
    }
    request = Request(scope)
    request.state.body = {} if body is None else body
    return request


class TestChecks:

    def test_valid_fields_have_no_errors(self):
        v = Validator(_request(body={"email": "ada@example.com", "age": "36"}))
        v.check_body("email").not_empty().is_email()
        v.check_body("age").is_int(min=18)
        assert v.errors() == []

    def test_each_failing_check_is_reported(self):
        v = Validator(_request(body={"email": ""}))
        v.check_body("email", "email is bad").not_empty().is_email()
        issues = v.errors()
        assert [i.msg for i in issues] == ["email is bad", "email is bad"]
        assert issues[0].location == "body"
        assert issues[0].param == "email"

    def test_custom_message_per_check(self):
        v = Validator(_request(body={"name": "x"}))
        v.check_body("name").is_length(min=3, msg="too short")
        assert v.errors()[0].msg == "too short"

    def test_is_int_bounds(self):
        v = Validator(_request(body={"low": "3", "high": 500, "ok": "42", "word": "abc", "flag": True}))
        v.check_body("low").is_int(min=10)
        v.check_body("high").is_int(max=100)
        v.check_body("ok").is_int(min=0, max=100)
        v.check_body("word").is_int()
        v.check_body("flag").is_int()
        assert [i.param for i in v.errors()] == ["low", "high", "word", "flag"]

    def test_optional_skips_missing(self):
        v = Validator(_request(body={}))
        v.check_body("nickname").optional().is_length(min=3)
        assert v.errors() == []

    def test_matches_and_is_in(self):
        v = Validator(_request(body={"code": "AB-12", "color": "mauve"}))
        v.check_body("code").matches(r"^[A-Z]{2}-\d+$")
        v.check_body("color").is_in(["red", "green"])
        assert [i.param for i in v.errors()] == ["color"]

    def test_check_searches_params_then_query_then_body(self):
        v = Validator(_request(query=b"id=query&page=2", body={"id": "body", "title": "t"}, path_params={"id": "7"}))
        assert v.check("id").location == "params"
        assert v.check("page").location == "query"
        assert v.check("title").location == "body"
        assert v.value("id") == "7"

    def test_repeated_query_values(self):
        v = Validator(_request(query=b"tag=a&tag=b"))
        assert v.value("tag", "query") == ["a", "b"]

    def test_mapped_errors_keeps_first(self):
        v = Validator(_request(body={"email": ""}))
        v.check_body("email", "required").not_empty()
        v.check_body("email", "format").is_email()
        assert v.mapped_errors()["email"].msg == "required"

    def test_list_body_has_no_fields(self):
        v = Validator(_request(body=[1, 2]))
        v.check_body("anything").not_empty()
        assert len(v.errors()) == 1


class TestSanitizers:

    def test_trim_and_escape_write_back_to_body(self):
        request = _request(body={"name": "  <b>Ada</b>  "})
        v = Validator(request)
        v.sanitize_body("name").trim().escape()
        assert request.state.body["name"] == "&lt;b&gt;Ada&lt;/b&gt;"
        assert v.value("name") == "&lt;b&gt;Ada&lt;/b&gt;"

    def test_query_sanitizing_is_readable_through_validator(self):
        v = Validator(_request(query=b"page=%2012%20"))
        v.sanitize_query("page").trim().to_int()
        assert v.value("page", "query") == 12

    def test_to_int_invalid_is_none(self):
        v = Validator(_request(body={"n": "abc"}))
        v.sanitize("n").to_int()
        assert v.value("n") is None

    def test_to_boolean(self):
        v = Validator(_request(body={"a": "false", "b": "yes", "c": "yes", "d": "1"}))
        v.sanitize("a").to_boolean()
        v.sanitize("b").to_boolean()
        v.sanitize("c").to_boolean(strict=True)
        v.sanitize("d").to_boolean(strict=True)
        assert [v.value(k) for k in "abcd"] == [False, True, False, True]

    def test_missing_field_is_left_alone(self):
        request = _request(body={})
        Validator(request).sanitize_body("ghost").trim()
        assert "ghost" not in request.state.body


class TestThroughServer:

    def test_signup_validation(self, client):
        response = client.post("/signup", data={"email": "nope", "age": "12", "name": "  <i>x</i> "})
        payload = response.json()
        assert [e["param"] for e in payload["errors"]] == ["email", "age"]
        assert payload["name"] == "&lt;i&gt;x&lt;/i&gt;"

    def test_signup_valid(self, client):
        response = client.post("/signup", json={"email": "ada@example.com"})
        assert response.json()["errors"] == []

    def test_validator_is_fresh_per_request(self, client):
        client.post("/signup", data={"email": "nope"})
        response = client.post("/signup", data={"email": "ada@example.com"})
        assert response.json()["errors"] == []
