import socket

from openplant.config import Config
from openplant.frame import CompressionMode


def test_address_joins_host_and_port():
    assert Config(host="127.0.0.1", port=8200).address() == "127.0.0.1:8200"


def test_address_brackets_ipv6_host():
    assert Config(host="::1", port=8200).address() == "[::1]:8200"


def test_with_defaults_fills_unset_values():
    cfg = Config(host="h", port=1).with_defaults()
    assert cfg.dial_timeout == 10
    assert cfg.request_timeout == 30
    assert cfg.pool_size == 4
    assert cfg.max_idle == cfg.pool_size
    assert cfg.idle_timeout == 5 * 60
    assert cfg.max_lifetime == 30 * 60
    assert cfg.compression == CompressionMode.NONE


def test_with_defaults_keeps_explicit_values():
    cfg = Config(
        dial_timeout=1.5,
        request_timeout=2.5,
        pool_size=7,
        max_idle=3,
        idle_timeout=11,
        max_lifetime=12,
    ).with_defaults()
    assert (cfg.dial_timeout, cfg.request_timeout, cfg.pool_size, cfg.max_idle) == (1.5, 2.5, 7, 3)
    assert (cfg.idle_timeout, cfg.max_lifetime) == (11, 12)


def test_with_defaults_clamps_max_idle_to_pool_size():
    cfg = Config(pool_size=2, max_idle=9).with_defaults()
    assert cfg.max_idle == cfg.pool_size == 2


def test_with_defaults_does_not_modify_original():
    original = Config(host="h")
    original.with_defaults()
    assert original.pool_size == 0
    assert original.dial is None


def test_with_defaults_keeps_custom_dial():
    def custom(host, port, timeout):
        raise OSError("unused")

    assert Config(dial=custom).with_defaults().dial is custom


def test_default_dial_connects_over_tcp():
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    try:
        port = server.getsockname()[1]
        cfg = Config(host="127.0.0.1", port=port).with_defaults()
        client = cfg.dial(cfg.host, cfg.port, 1.0)
        try:
            peer, peer_address = server.accept()
            peer.close()
            assert peer_address == client.getsockname()
        finally:
            client.close()
    finally:
        server.close()