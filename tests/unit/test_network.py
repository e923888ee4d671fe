from starlette.requests import Request

from bizhub.utils.network import client_ip


def _request(**headers):
    raw = [(name.replace("_", "-").encode(), value.encode()) for name, value in headers.items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


def test_forwarded_for_takes_first_hop():
    req = _request(x_forwarded_for="198.51.100.4, 10.0.0.2", x_real_ip="10.0.0.9")
    assert client_ip(req) == "198.51.100.4"


def test_real_ip_when_not_forwarded():
    assert client_ip(_request(x_real_ip=" 192.0.2.10 ")) == "192.0.2.10"
    assert client_ip(_request(x_forwarded_for=" , 10.0.0.2", x_real_ip="192.0.2.10")) == "192.0.2.10"


def test_unknown_without_proxy_headers():
    assert client_ip(_request()) == "unknown"
