import pytest

from httpu.transport.errors import EncodeError, ParseError
from httpu.transport.framing import decode_response, encode_request

SSDP_HEADERS = [
    ("HOST", "239.255.255.250:1900"),
    ("MAN", '"ssdp:discover"'),
    ("MX", "2"),
    ("ST", "ssdp:all"),
]


def test_encode_msearch_is_request_line_headers_and_blank_line():
    pkt = encode_request("M-SEARCH", "*", SSDP_HEADERS)
    assert pkt == (
        b"M-SEARCH * HTTP/1.1\r\n"
        b"HOST: 239.255.255.250:1900\r\n"
        b'MAN: "ssdp:discover"\r\n'
        b"MX: 2\r\n"
        b"ST: ssdp:all\r\n"
        b"\r\n"
    )


def test_encode_defaults_to_get_and_adds_nothing():
    assert encode_request("", "/desc.xml", []) == b"GET /desc.xml HTTP/1.1\r\n\r\n"


def test_encode_folds_newlines_in_header_values():
    pkt = encode_request("GET", "*", [("X-Note", "one\r\ntwo")])
    assert b"X-Note: one  two\r\n" in pkt


def test_encode_sends_non_ascii_header_text_as_utf8():
    pkt = encode_request("GET", "*", [("X-Room", "客厅"), ("X-Name", "café ☃")])
    assert "X-Room: 客厅\r\n".encode("utf-8") in pkt
    assert "X-Name: café ☃\r\n".encode("utf-8") in pkt


@pytest.mark.parametrize(
    "method,target,headers",
    [
        ("M SEARCH", "*", []),
        ("GET", "", []),
        ("GET", "/a b", []),
        ("GET", "*", [("Bad Name", "x")]),
        ("GET", "*", [("X-Name", "half a pair \ud800")]),
    ],
)
def test_encode_rejects_unwritable_requests(method, target, headers):
    with pytest.raises(EncodeError):
        encode_request(method, target, headers)


def test_decode_ssdp_response():
    resp = decode_response(
        b"HTTP/1.1 200 OK\r\n"
        b"ST: upnp:rootdevice\r\n"
        b"USN: uuid:abc::upnp:rootdevice\r\n"
        b"Content-Length: 5\r\n"
        b"\r\n"
        b"hello",
        "M-SEARCH",
    )
    assert resp.status_code == 200
    assert resp.reason_phrase == "OK"
    assert resp.http_version == "HTTP/1.1"
    assert resp.headers["st"] == "upnp:rootdevice"
    assert resp.headers["USN"] == "uuid:abc::upnp:rootdevice"
    assert resp.content == b"hello"
    # nothing is added beyond what the device sent
    assert len(resp.headers) == 3


def test_decode_without_content_length_reads_to_end_of_datagram():
    resp = decode_response(b"HTTP/1.1 200 OK\r\nST: x\r\n\r\nhello", "GET")
    assert resp.content == b"hello"


def test_decode_keeps_partial_body_of_truncated_datagram():
    resp = decode_response(b"HTTP/1.1 200 OK\r\nContent-Length: 10\r\n\r\nabc", "GET")
    assert resp.status_code == 200
    assert resp.content == b"abc"


def test_decode_head_response_has_no_body():
    resp = decode_response(b"HTTP/1.1 200 OK\r\nContent-Length: 5\r\n\r\n", "HEAD")
    assert resp.content == b""
    assert resp.headers["content-length"] == "5"


@pytest.mark.parametrize(
    "datagram",
    [
        b"",
        b"\x00\xff\xfe garbage",
        b"HTTP/1.1 abc\r\n\r\n",
        b"NOTIFY * HTTP/1.1\r\nHOST: 239.255.255.250:1900\r\n\r\n",
        b"HTTP/1.1 200 OK\r\nST: cut-off-mid-head",
    ],
)
def test_decode_rejects_non_responses(datagram):
    with pytest.raises(ParseError):
        decode_response(datagram, "M-SEARCH")
