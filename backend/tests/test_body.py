"""
Body parsing: JSON and URL-encoded payloads, limits, charsets, deep
nesting, and the raw body still being readable by the route afterwards.
"""

import logging


class TestJsonBodies:

    def test_object_is_parsed_and_replayed(self, client):
        response = client.post("/echo", json={"name": "ada", "tags": ["x"]})
        assert response.status_code == 200
        payload = response.json()
        assert payload["body"] == {"name": "ada", "tags": ["x"]}
        assert '"name"' in payload["raw"]

    def test_array_is_accepted(self, client):
        response = client.post("/echo", content=b"[1, 2]", headers={"Content-Type": "application/json"})
        assert response.json()["body"] == [1, 2]

    def test_vendor_json_type(self, client):
        response = client.post(
            "/echo",
            content=b'{"a": 1}',
            headers={"Content-Type": "application/vnd.api+json"},
        )
        assert response.json()["body"] == {"a": 1}

    def test_empty_body_is_empty_dict(self, client):
        response = client.post("/echo", content=b"", headers={"Content-Type": "application/json"})
        assert response.json()["body"] == {}

    def test_malformed_json_is_400(self, client):
        response = client.post("/echo", content=b'{"name": ', headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.context["message"].startswith("Malformed JSON body")

    def test_top_level_scalar_is_400(self, client):
        response = client.post("/echo", content=b'"just a string"', headers={"Content-Type": "application/json"})
        assert response.status_code == 400

    def test_malformed_json_on_unknown_path_is_400(self, client):
        # The parser runs before routing, so the parse error wins over the 404
        response = client.post("/missing", content=b"{oops", headers={"Content-Type": "application/json"})
        assert response.status_code == 400

    def test_parse_error_detail_in_development(self, make_client):
        response = make_client(env="development").post(
            "/echo", content=b"{oops", headers={"Content-Type": "application/json"}
        )
        assert response.context["error"]["type"] == "entity.parse.failed"

    def test_parse_errors_are_not_logged_as_server_errors(self, client, caplog):
        with caplog.at_level(logging.ERROR):
            client.post("/echo", content=b"{oops", headers={"Content-Type": "application/json"})
        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]


class TestUrlencodedBodies:

    def test_form_is_parsed(self, client):
        response = client.post("/echo", data={"name": "ada", "empty": ""})
        assert response.json()["body"] == {"name": "ada", "empty": ""}

    def test_repeated_keys_become_lists(self, client):
        response = client.post(
            "/echo",
            content=b"tag=a&tag=b&tag=c&one=1",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        assert response.json()["body"] == {"tag": ["a", "b", "c"], "one": "1"}

    def test_bracket_keys_stay_flat(self, client):
        response = client.post(
            "/echo",
            content=b"user[name]=ada",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        assert response.json()["body"] == {"user[name]": "ada"}

    def test_too_many_parameters(self, make_client):
        response = make_client(parameter_limit=2).post(
            "/echo",
            content=b"a=1&b=2&c=3",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        assert response.status_code == 413


class TestLimits:

    def test_body_over_limit_is_413(self, make_client):
        response = make_client(body_limit=10).post("/echo", json={"data": "x" * 100})
        assert response.status_code == 413
        assert response.context["message"] == "request entity too large"

    def test_unsupported_charset_is_415(self, client):
        response = client.post(
            "/echo",
            content=b'{"a": 1}',
            headers={"Content-Type": "application/json; charset=latin1"},
        )
        assert response.status_code == 415

    def test_other_content_types_are_left_alone(self, client):
        response = client.post("/echo", content=b"plain text", headers={"Content-Type": "text/plain"})
        assert response.json() == {"body": {}, "raw": "plain text"}


class TestHostileJson:

    def test_deeply_nested_json_is_400(self, client):
        response = client.post("/echo", content=b"[" * 50000, headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.context["message"].startswith("Malformed JSON body")

    def test_deeply_nested_valid_json_is_400(self, make_client):
        content = b"[" * 50000 + b"]" * 50000
        response = make_client(env="development").post(
            "/echo", content=content, headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.context["error"]["type"] == "entity.parse.failed"

    def test_large_flat_json_within_limit(self, client):
        items = list(range(5000))
        response = client.post("/echo", json={"items": items})
        assert response.status_code == 200
        assert response.json()["body"]["items"] == items

    def test_nesting_errors_are_not_logged_as_server_errors(self, client, caplog):
        with caplog.at_level(logging.ERROR):
            client.post("/echo", content=b"{\"a\":" * 20000, headers={"Content-Type": "application/json"})
        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]
