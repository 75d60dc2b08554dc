import pytest

from tarsrpc.httpstat import (
    HttpStatConfig,
    RequestStat,
    StatMiddleware,
    build_stat_record,
    client_address,
    default_exception_status_checker,
)


def test_client_address_prefers_real_ip():
    headers = {"X-Forwarded-For": "10.0.0.3", "X-Real-Ip": "10.0.0.1"}
    assert client_address(headers, "10.0.0.9:5555") == "10.0.0.1"


def test_client_address_header_order_and_case():
    headers = {"x-forwarded-for": "10.0.0.3", "X-FORWARDED-FOR-POUND": "10.0.0.2"}
    assert client_address(headers, "10.0.0.9:5555") == "10.0.0.2"


def test_client_address_falls_back_to_peer_host():
    assert client_address({}, "10.0.0.9:5555") == "10.0.0.9"
    assert client_address({"X-Real-Ip": ""}, "10.0.0.9") == "10.0.0.9"


@pytest.mark.parametrize("code,expected", [(200, False), (399, False), (400, True), (503, True)])
def test_default_exception_status_checker(code, expected):
    assert default_exception_status_checker(code) is expected


def test_success_record():
    cfg = HttpStatConfig(app_name="App.Web", ip="10.1.1.1", port=8080, version="1.0")
    record = build_stat_record(cfg, RequestStat("10.0.0.1", "/api", 200, 12))
    assert record.master_name == "http_client"
    assert record.master_ip == "10.0.0.1"
    assert record.slave_name == "App.Web"
    assert (record.slave_ip, record.slave_port) == ("10.1.1.1", 8080)
    assert record.interface_name == "/api"
    assert (record.count, record.exec_count) == (1, 0)
    assert record.total_rsp_time == record.max_rsp_time == record.min_rsp_time == 12


def test_failure_record_has_no_timing():
    cfg = HttpStatConfig(app_name="App.Web")
    record = build_stat_record(cfg, RequestStat("10.0.0.1", "/", 500, 12))
    assert (record.count, record.exec_count) == (0, 1)
    assert record.total_rsp_time == 0


def test_custom_checker():
    cfg = HttpStatConfig(app_name="App.Web", exception_status_checker=lambda c: c == 200)
    record = build_stat_record(cfg, RequestStat("10.0.0.1", "/", 200, 3))
    assert record.exec_count == 1


def test_set_id_fills_set_fields():
    cfg = HttpStatConfig(app_name="App.Web", set_id="gz.north.1")
    record = build_stat_record(cfg, RequestStat("10.0.0.1", "/", 200, 1))
    assert (record.slave_set_name, record.slave_set_area, record.slave_set_id) == (
        "gz",
        "north",
        "1",
    )
    assert record.slave_name == "App.Web.gznorth1"


def test_malformed_set_id():
    cfg = HttpStatConfig(app_name="App.Web", set_id="gz")
    with pytest.raises(ValueError):
        build_stat_record(cfg, RequestStat("10.0.0.1", "/", 200, 1))


class Clock:
    def __init__(self):
        self.values = iter([100, 125])

    def __call__(self):
        return next(self.values)


def run(middleware, environ):
    seen = {}

    def start_response(status, headers, exc_info=None):
        seen["status"] = status
        seen["headers"] = headers

    body = middleware(environ, start_response)
    data = b"".join(body)
    close = getattr(body, "close", None)
    if close is not None:
        close()
    return seen, data


def hello_app(environ, start_response):
    start_response("404 Not Found", [("Content-Type", "text/plain")])
    return [b"missing"]


def test_middleware_reports_request():
    records = []
    middleware = StatMiddleware(
        hello_app, HttpStatConfig(app_name="App.Web"), records.append, clock=Clock()
    )
    environ = {
        "PATH_INFO": "/items",
        "REMOTE_ADDR": "10.0.0.7",
        "HTTP_X_REAL_IP": "10.0.0.1",
        "SERVER_PROTOCOL": "HTTP/1.1",
    }
    seen, data = run(middleware, environ)
    assert seen["status"] == "404 Not Found"
    assert data == b"missing"
    assert len(records) == 1
    assert records[0].master_ip == "10.0.0.1"
    assert records[0].interface_name == "/items"
    assert records[0].exec_count == 1


def test_middleware_reports_cost_on_success():
    def ok_app(environ, start_response):
        start_response("200 OK", [])
        return [b"ok"]

    records = []
    middleware = StatMiddleware(
        ok_app, HttpStatConfig(app_name="App.Web"), records.append, clock=Clock()
    )
    run(middleware, {"REMOTE_ADDR": "10.0.0.7", "SERVER_PROTOCOL": "HTTP/1.1"})
    assert records[0].total_rsp_time == 125 - 100
    assert records[0].interface_name == "/"
    assert records[0].master_ip == "10.0.0.7"


def test_asterisk_request_rejected():
    records = []
    middleware = StatMiddleware(hello_app, HttpStatConfig(), records.append)
    seen, _ = run(middleware, {"REQUEST_URI": "*", "SERVER_PROTOCOL": "HTTP/1.1"})
    assert seen["status"].startswith("400")
    assert ("Connection", "close") in seen["headers"]
    assert records == []


def test_no_config_means_no_report():
    records = []
    middleware = StatMiddleware(hello_app, None, records.append)
    seen, data = run(middleware, {"PATH_INFO": "/", "REMOTE_ADDR": "10.0.0.7"})
    assert data == b"missing"
    assert records == []