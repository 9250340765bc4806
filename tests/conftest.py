import json
import os
import socket
import socketserver
import sys
import threading
import time

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from yggpub.config import DashboardConfig  # noqa: E402


def switchpeers_reply(links):
    """links: {port: (ip, sent, recvd, coords)}"""
    return {
        "status": "success",
        "response": {
            "switchpeers": {
                port: {"ip": ip, "bytes_sent": sent, "bytes_recvd": recvd, "coords": coords, "port": port}
                for port, (ip, sent, recvd, coords) in links.items()
            }
        },
    }


class FakeAdmin:
    """
    Scripted admin socket. ``reply`` is either a dict (sent as JSON), raw
    bytes, or None (close without answering). ``mode`` controls delivery:
      "close"     - send everything then close
      "fragments" - send in small pieces with pauses, then close
      "keepopen"  - send everything and keep the connection open
      "silent"    - never answer, keep the connection open
      "trickle"   - send one blank byte every 0.1 s, never a full reply
    """

    def __init__(self):
        self.reply = {"status": "success", "response": {"switchpeers": {}}}
        self.mode = "close"
        self.requests = []
        self.release = threading.Event()

    def payload(self):
        if self.reply is None:
            return b""
        if isinstance(self.reply, bytes):
            return self.reply
        return json.dumps(self.reply).encode("utf-8")

    def make_handler(self):
        fake = self

        class Handler(socketserver.BaseRequestHandler):
            def handle(self):
                buf = b""
                self.request.settimeout(2.0)
                while True:
                    try:
                        chunk = self.request.recv(4096)
                    except socket.timeout:
                        break
                    if not chunk:
                        break
                    buf += chunk
                    try:
                        fake.requests.append(json.loads(buf.decode("utf-8")))
                        break
                    except ValueError:
                        continue

                data = fake.payload()
                if fake.mode == "trickle":
                    while not fake.release.wait(0.1):
                        try:
                            self.request.sendall(b" ")
                        except OSError:
                            return
                    return
                if fake.mode == "silent":
                    fake.release.wait(5.0)
                    return
                if fake.mode == "fragments":
                    for i in range(0, len(data), 7):
                        self.request.sendall(data[i:i + 7])
                        time.sleep(0.001)
                    return
                if data:
                    self.request.sendall(data)
                if fake.mode == "keepopen":
                    fake.release.wait(5.0)

        return Handler


class _TCPServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True


@pytest.fixture
def fake_admin():
    fake = FakeAdmin()
    server = _TCPServer(("127.0.0.1", 0), fake.make_handler())
    host, port = server.server_address[:2]
    fake.address = f"tcp://{host}:{port}"
    t = threading.Thread(target=server.serve_forever, daemon=True)
    t.start()
    try:
        yield fake
    finally:
        fake.release.set()
        server.shutdown()
        server.server_close()


@pytest.fixture
def unix_admin(tmp_path):
    if not hasattr(socketserver, "ThreadingUnixStreamServer"):
        pytest.skip("unix sockets not available")
    path = str(tmp_path / "admin.sock")
    if len(path) > 100:
        pytest.skip("tmp path too long for a unix socket")

    class _UnixServer(socketserver.ThreadingUnixStreamServer):
        daemon_threads = True

    fake = FakeAdmin()
    server = _UnixServer(path, fake.make_handler())
    fake.address = f"unix://{path}"
    t = threading.Thread(target=server.serve_forever, daemon=True)
    t.start()
    try:
        yield fake
    finally:
        fake.release.set()
        server.shutdown()
        server.server_close()


@pytest.fixture
def dashboard_files(tmp_path):
    template = tmp_path / "template.html"
    template.write_text("<title>%HOSTNAME%</title><body>%PEERS%</body>", encoding="utf-8")
    static = tmp_path / "static"
    static.mkdir()
    (static / "style.css").write_text("body { color: red; }", encoding="utf-8")
    (static / "chartist.min.js").write_bytes(b"var Chartist = {};")
    return template, static


@pytest.fixture
def client(fake_admin, dashboard_files):
    """Flask test client wired to the fake admin socket."""
    from yggpub import web_ui

    template, static = dashboard_files
    cfg = DashboardConfig(
        nodename="testnode",
        adminaddr=fake_admin.address,
        template_path=str(template),
        static_dir=str(static),
        admin_timeout_s=2.0,
    )
    previous = web_ui.current_config()
    app = web_ui.configure(cfg)
    app.config["TESTING"] = True
    with app.test_client() as c:
        yield c
    web_ui.configure(previous)
