import re

import pytest

from yggpub.peers import PeerSummary
from yggpub.render import (
    NO_PEERS_HTML,
    format_bytes,
    load_template,
    ports_label,
    render,
    render_message,
    render_page,
    render_peers,
)

SERIES_RE = re.compile(r"new Chartist\.Pie\('#(ct-\d+)', \{ series: \[(\d+), (\d+), (\d+), (-?\d+)\] \}")


def series(html):
    return [(m.group(1), tuple(int(m.group(i)) for i in range(2, 6))) for m in SERIES_RE.finditer(html)]


@pytest.mark.parametrize("n,expected", [
    (0, "0 B"),
    (9, "9 B"),
    (10, "10 B"),
    (999, "999 B"),
    (1000, "1.0 kB"),
    (1500, "1.5 kB"),
    (82000, "82 kB"),
    (1234567, "1.2 MB"),
    (5 * 10 ** 9, "5.0 GB"),
    (2 ** 64 - 1, "18 EB"),
])
def test_format_bytes(n, expected):
    assert format_bytes(n) == expected


def test_ports_label():
    assert ports_label(["3"]) == "switch port 3"
    assert ports_label(["3", "7"]) == "switch ports 3, 7"
    assert ports_label(["1", "2", "5"]) == "switch ports 1, 2, 5"


def test_empty_renders_notice_only():
    html = render_peers({}, 0)
    assert html == NO_PEERS_HTML
    assert "ct-chart" not in html
    assert "Chartist" not in html


def test_offsets_accumulate():
    peers = {
        "200::1": PeerSummary(ports=["1"], bytes_sent=10, bytes_recvd=20, coords="[1]"),
        "200::2": PeerSummary(ports=["2"], bytes_sent=5, bytes_recvd=5, coords="[2]"),
        "200::3": PeerSummary(ports=["3"], bytes_sent=1, bytes_recvd=1, coords="[3]"),
    }
    total = 100  # includes bytes from links not shown
    got = series(render_peers(peers, total))
    assert got == [
        ("ct-0", (0, 10, 20, total - 0 - 10 - 20)),
        ("ct-1", (30, 5, 5, total - 30 - 5 - 5)),
        ("ct-2", (40, 1, 1, total - 40 - 1 - 1)),
    ]


def test_series_sum_to_total():
    peers = {
        f"200::{i}": PeerSummary(ports=[str(i)], bytes_sent=i * 3, bytes_recvd=i * 5, coords="[]")
        for i in range(1, 6)
    }
    total = sum(p.total_bytes for p in peers.values())
    for _, values in series(render_peers(peers, total)):
        assert sum(values) == total


def test_peer_block_contents():
    peers = {"200::abcd": PeerSummary(ports=["4", "9"], bytes_sent=1234567, bytes_recvd=82000, coords="[]")}
    html = render_peers(peers, 1234567 + 82000)
    assert "id='ct-0'" in html
    assert "<div id='ipv6'>200::abcd</div>" in html
    assert "<div>Root attached to switch ports 4, 9</div>" in html
    assert "<div>1.2 MB sent</div>" in html
    assert "<div>82 kB received</div>" in html


def test_non_root_coords_verbatim():
    peers = {"200::1": PeerSummary(ports=["1"], bytes_sent=1, bytes_recvd=1, coords="[1 3]")}
    assert "[1 3] attached to switch port 1" in render_peers(peers, 2)


def test_peer_data_is_escaped():
    peers = {"<script>x</script>": PeerSummary(ports=["<b>"], bytes_sent=1, bytes_recvd=1, coords="[\"&\"]")}
    html = render_peers(peers, 2)
    assert "<script>x</script>" not in html
    assert "&lt;script&gt;x&lt;/script&gt;" in html
    assert "&lt;b&gt;" in html
    assert "&amp;" in html


def test_render_page_substitutes_every_token():
    tpl = "<title>%HOSTNAME%</title><h1>%HOSTNAME%</h1>%PEERS%"
    assert render_page(tpl, "node", "<p>x</p>") == "<title>node</title><h1>node</h1><p>x</p>"


def test_render_page_escapes_nodename():
    out = render_page("%HOSTNAME%|%PEERS%", "<img src=x onerror=alert(1)>", "")
    assert "<img" not in out
    assert out.startswith("&lt;img")


def test_nodename_with_token_not_expanded():
    out = render_page("%HOSTNAME%|%PEERS%", "%PEERS%", "<p>peers</p>")
    assert out == "%PEERS%|<p>peers</p>"


def test_render_message_escaped():
    out = render_message("%PEERS%", "n", "bad <thing>")
    assert out == "<div class='error'>bad &lt;thing&gt;</div>"


def test_render_full_page():
    peers = {"200::1": PeerSummary(ports=["1"], bytes_sent=1, bytes_recvd=1, coords="[]")}
    out = render("<h1>%HOSTNAME%</h1>%PEERS%", "mynode", peers, 2)
    assert out.startswith("<h1>mynode</h1><div class='node'>")


def test_load_template(tmp_path):
    p = tmp_path / "t.html"
    p.write_text("é %PEERS%", encoding="utf-8")
    assert load_template(p) == "é %PEERS%"
    with pytest.raises(OSError):
        load_template(tmp_path / "missing.html")
