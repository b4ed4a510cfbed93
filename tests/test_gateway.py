"""Tests for the UPnP IGD client and gateway lookup."""

import http.client
import logging
import socket
import urllib.error
from ipaddress import IPv4Address
from unittest.mock import MagicMock, patch

import pytest

from whatsmyip.core.exceptions import GatewayError
from whatsmyip.core.gateway import (
    Gateway,
    _find_control_url,
    _ssdp_search,
    lookup_gateway_address,
    search_gateway,
)

from conftest import FakeGateway, FakeGatewaySearch


DESCRIPTION = b"""<?xml version="1.0"?>
<root xmlns="urn:schemas-upnp-org:device-1-0">
  <device>
    <deviceType>urn:schemas-upnp-org:device:InternetGatewayDevice:1</deviceType>
    <deviceList>
      <device>
        <deviceType>urn:schemas-upnp-org:device:WANDevice:1</deviceType>
        <deviceList>
          <device>
            <deviceType>urn:schemas-upnp-org:device:WANConnectionDevice:1</deviceType>
            <serviceList>
              <service>
                <serviceType>urn:schemas-upnp-org:service:WANIPConnection:1</serviceType>
                <controlURL>/ctl/IPConn</controlURL>
              </service>
            </serviceList>
          </device>
        </deviceList>
      </device>
    </deviceList>
  </device>
</root>
"""

SOAP_RESPONSE = b"""<?xml version="1.0"?>
<s:Envelope xmlns:s="http://schemas.xmlsoap.org/soap/envelope/">
  <s:Body>
    <u:GetExternalIPAddressResponse xmlns:u="urn:schemas-upnp-org:service:WANIPConnection:1">
      <NewExternalIPAddress>203.0.113.5</NewExternalIPAddress>
    </u:GetExternalIPAddressResponse>
  </s:Body>
</s:Envelope>
"""


def _mock_response(mock_urlopen, payload: bytes):
    response = MagicMock()
    response.read.return_value = payload
    mock_urlopen.return_value.__enter__.return_value = response


class TestFindControlUrl:
    """Tests for device description parsing."""

    def test_resolves_against_location(self):
        """Should resolve a relative control URL against the description location."""
        url, service_type = _find_control_url("http://192.168.1.1:5000/rootDesc.xml", DESCRIPTION)

        assert url == "http://192.168.1.1:5000/ctl/IPConn"
        assert service_type == "urn:schemas-upnp-org:service:WANIPConnection:1"

    def test_prefers_url_base(self):
        """Should resolve against URLBase when present."""
        description = DESCRIPTION.replace(
            b"<device>", b"<URLBase>http://10.0.0.1:80/</URLBase><device>", 1
        )

        url, _ = _find_control_url("http://192.168.1.1:5000/rootDesc.xml", description)

        assert url == "http://10.0.0.1:80/ctl/IPConn"

    def test_ppp_connection(self):
        description = DESCRIPTION.replace(b"WANIPConnection", b"WANPPPConnection")

        _, service_type = _find_control_url("http://192.168.1.1/", description)

        assert service_type.endswith("WANPPPConnection:1")

    def test_no_wan_service(self):
        """Should raise when the device exposes no WAN connection service."""
        description = DESCRIPTION.replace(b"WANIPConnection", b"Layer3Forwarding")

        with pytest.raises(GatewayError):
            _find_control_url("http://192.168.1.1/", description)

    def test_malformed_xml(self):
        with pytest.raises(GatewayError):
            _find_control_url("http://192.168.1.1/", b"<root>")


class TestGateway:
    """Tests for the SOAP external address query."""

    @patch("whatsmyip.core.gateway.urllib.request.urlopen")
    def test_get_external_ip(self, mock_urlopen):
        """Should read NewExternalIPAddress from the SOAP response."""
        _mock_response(mock_urlopen, SOAP_RESPONSE)
        gateway = Gateway("http://192.168.1.1/ctl/IPConn", "urn:schemas-upnp-org:service:WANIPConnection:1")

        assert gateway.get_external_ip() == IPv4Address("203.0.113.5")

        request = mock_urlopen.call_args.args[0]
        assert request.get_method() == "POST"
        assert request.get_header("Soapaction") == (
            '"urn:schemas-upnp-org:service:WANIPConnection:1#GetExternalIPAddress"'
        )

    @patch("whatsmyip.core.gateway.urllib.request.urlopen")
    def test_empty_address(self, mock_urlopen):
        """Should raise when the router reports no address."""
        _mock_response(mock_urlopen, SOAP_RESPONSE.replace(b"203.0.113.5", b""))
        gateway = Gateway("http://192.168.1.1/ctl/IPConn", "urn:schemas-upnp-org:service:WANIPConnection:1")

        with pytest.raises(GatewayError):
            gateway.get_external_ip()

    @patch("whatsmyip.core.gateway.urllib.request.urlopen")
    def test_http_error(self, mock_urlopen):
        mock_urlopen.side_effect = urllib.error.HTTPError(
            "http://192.168.1.1/ctl/IPConn", 500, "Internal Server Error", {}, None
        )
        gateway = Gateway("http://192.168.1.1/ctl/IPConn", "urn:schemas-upnp-org:service:WANIPConnection:1")

        with pytest.raises(GatewayError, match="500"):
            gateway.get_external_ip()


    @patch("whatsmyip.core.gateway.urllib.request.urlopen")
    def test_malformed_status_line(self, mock_urlopen):
        """Should turn HTTP protocol errors into GatewayError."""
        mock_urlopen.side_effect = http.client.BadStatusLine("garbage")
        gateway = Gateway("http://192.168.1.1/ctl/IPConn", "urn:schemas-upnp-org:service:WANIPConnection:1")

        with pytest.raises(GatewayError):
            gateway.get_external_ip()

    @patch("whatsmyip.core.gateway.urllib.request.urlopen")
    def test_rejects_non_http_control_url(self, mock_urlopen):
        """Should not open control URLs with other schemes."""
        gateway = Gateway("file:///etc/passwd", "urn:schemas-upnp-org:service:WANIPConnection:1")

        with pytest.raises(GatewayError, match="non-HTTP"):
            gateway.get_external_ip()

        mock_urlopen.assert_not_called()


class TestSearchGateway:
    """Tests for search_gateway."""

    @patch("whatsmyip.core.gateway.urllib.request.urlopen")
    @patch("whatsmyip.core.gateway._ssdp_search")
    def test_builds_gateway(self, mock_search, mock_urlopen):
        """Should fetch the description from the SSDP location."""
        mock_search.return_value = "http://192.168.1.1:5000/rootDesc.xml"
        _mock_response(mock_urlopen, DESCRIPTION)

        gateway = search_gateway(timeout=1.0)

        assert gateway.control_url == "http://192.168.1.1:5000/ctl/IPConn"
        assert gateway.timeout == 1.0
        mock_search.assert_called_once_with(1.0)

    @patch("whatsmyip.core.gateway.urllib.request.urlopen")
    @patch("whatsmyip.core.gateway._ssdp_search")
    def test_description_unreachable(self, mock_search, mock_urlopen):
        mock_search.return_value = "http://192.168.1.1:5000/rootDesc.xml"
        mock_urlopen.side_effect = urllib.error.URLError("refused")

        with pytest.raises(GatewayError):
            search_gateway()


    @patch("whatsmyip.core.gateway.urllib.request.urlopen")
    @patch("whatsmyip.core.gateway._ssdp_search")
    def test_truncated_description(self, mock_search, mock_urlopen):
        mock_search.return_value = "http://192.168.1.1:5000/rootDesc.xml"
        mock_urlopen.side_effect = http.client.IncompleteRead(b"<root>", 500)

        with pytest.raises(GatewayError):
            search_gateway()

    @pytest.mark.parametrize("location", [
        "file:///etc/passwd",
        "ftp://192.168.1.1/rootDesc.xml",
        "data:text/xml,<root/>",
    ])
    @patch("whatsmyip.core.gateway.urllib.request.urlopen")
    @patch("whatsmyip.core.gateway._ssdp_search")
    def test_rejects_non_http_location(self, mock_search, mock_urlopen, location):
        """Should refuse to fetch descriptions from non-HTTP locations."""
        mock_search.return_value = location

        with pytest.raises(GatewayError, match="non-HTTP"):
            search_gateway()

        mock_urlopen.assert_not_called()


class TestSsdpSearch:
    """Tests for the SSDP M-SEARCH broadcast."""

    @patch("whatsmyip.core.gateway.socket.socket")
    def test_returns_location(self, mock_socket):
        """Should return the LOCATION header of the first reply."""
        sock = mock_socket.return_value
        sock.recvfrom.return_value = (
            b"HTTP/1.1 200 OK\r\n"
            b"ST: urn:schemas-upnp-org:device:InternetGatewayDevice:1\r\n"
            b"Location: http://192.168.1.1:5000/rootDesc.xml\r\n\r\n",
            ("192.168.1.1", 1900),
        )

        assert _ssdp_search(1.0) == "http://192.168.1.1:5000/rootDesc.xml"

        msg, addr = sock.sendto.call_args.args
        assert addr == ("239.255.255.250", 1900)
        assert b"ST: urn:schemas-upnp-org:device:InternetGatewayDevice:1" in msg
        sock.close.assert_called_once()

    @patch("whatsmyip.core.gateway.socket.socket")
    def test_timeout(self, mock_socket):
        """Should raise GatewayError when nobody answers."""
        sock = mock_socket.return_value
        sock.recvfrom.side_effect = socket.timeout("timed out")

        with pytest.raises(GatewayError, match="No IGD device"):
            _ssdp_search(0.5)

        sock.close.assert_called_once()

    @patch("whatsmyip.core.gateway.socket.socket")
    def test_reply_without_location(self, mock_socket):
        sock = mock_socket.return_value
        sock.recvfrom.side_effect = [
            (b"HTTP/1.1 200 OK\r\nSERVER: router\r\n\r\n", ("192.168.1.1", 1900)),
            socket.timeout("timed out"),
        ]

        with pytest.raises(GatewayError):
            _ssdp_search(0.5)

    @patch("whatsmyip.core.gateway.socket.socket")
    def test_send_failure(self, mock_socket):
        mock_socket.return_value.sendto.side_effect = OSError("Network is unreachable")

        with pytest.raises(GatewayError, match="SSDP search failed"):
            _ssdp_search(0.5)


class TestLookupGatewayAddress:
    """Tests for the non-fatal gateway strategy."""

    def test_success(self):
        search = FakeGatewaySearch(FakeGateway(ip=IPv4Address("203.0.113.5")))

        assert lookup_gateway_address(search) == IPv4Address("203.0.113.5")

    def test_no_gateway(self, caplog):
        """Should log at INFO and return None when no router is found."""
        with caplog.at_level(logging.INFO, logger="whatsmyip.core.gateway"):
            assert lookup_gateway_address(FakeGatewaySearch()) is None

        assert "Unable to find gateway" in caplog.text

    @patch("whatsmyip.core.gateway.urllib.request.urlopen")
    @patch("whatsmyip.core.gateway._ssdp_search")
    def test_protocol_error_is_not_raised(self, mock_search, mock_urlopen):
        """A router breaking the HTTP protocol should yield None, not an exception."""
        mock_search.return_value = "http://192.168.1.1:5000/rootDesc.xml"
        mock_urlopen.side_effect = http.client.BadStatusLine("garbage")

        assert lookup_gateway_address() is None

    def test_query_fails(self, caplog):
        """Should log at INFO and return None when the router refuses the query."""
        gateway = FakeGateway(error=GatewayError("GetExternalIPAddress failed with HTTP status 501"))

        with caplog.at_level(logging.INFO, logger="whatsmyip.core.gateway"):
            assert lookup_gateway_address(FakeGatewaySearch(gateway)) is None

        assert "Unable to query gateway" in caplog.text
        assert gateway.queries == 1
