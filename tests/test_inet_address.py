import pytest

from reactornet.inet_address import InetAddress


def test_defaults():
    addr = InetAddress()
    assert addr.to_ip_port() == "127.0.0.1:9001"


def test_source_example():
    addr = InetAddress(8080, "192.168.110.4")
    assert addr.to_ip_port() == "192.168.110.4:8080"
    assert addr.to_ip() == "192.168.110.4"
    assert addr.to_port() == 8080


def test_sockaddr_round_trip():
    addr = InetAddress(7890, "10.1.2.3")
    assert InetAddress.from_sockaddr(addr.sockaddr()) == addr


def test_from_sockaddr_ignores_extra_fields():
    addr = InetAddress.from_sockaddr(("127.0.0.1", 80, 0, 0))
    assert addr.sockaddr() == ("127.0.0.1", 80)


def test_invalid_ip():
    with pytest.raises(ValueError):
        InetAddress(80, "not an ip")


@pytest.mark.parametrize("port", [-1, 70000])
def test_invalid_port(port):
    with pytest.raises(ValueError):
        InetAddress(port, "127.0.0.1")


def test_str_matches_ip_port():
    addr = InetAddress(7890, "192.168.110.132")
    assert str(addr) == addr.to_ip_port()