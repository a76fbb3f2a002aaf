"""Tests that bind real sockets on localhost."""

import dataclasses
import logging
import os
import socket
import subprocess
import sys
import threading
import time
from pathlib import Path

import httpx
import pytest

from hello_service import server as server_module
from hello_service.server import create_server


@pytest.fixture()
def running_server(settings):
    server = create_server(settings)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
    thread.join(timeout=5)


def test_get_root_over_http(running_server):
    url = f"http://127.0.0.1:{running_server.server_port}/"
    for _ in range(3):
        response = httpx.get(url)
        assert response.status_code == 200
        assert response.text == "Hello World!"


def test_single_ready_log_line(settings, caplog):
    caplog.set_level(logging.INFO, logger="hello_service.server")
    server = create_server(settings)
    try:
        records = [r for r in caplog.records if r.name == "hello_service.server"]
        assert len(records) == 1
        assert "ready" in records[0].getMessage()
        assert str(server.server_port) in records[0].getMessage()
    finally:
        server.server_close()


def test_second_instance_on_same_port_fails(running_server, settings, caplog):
    taken = dataclasses.replace(settings, port=running_server.server_port)
    caplog.clear()
    with pytest.raises(SystemExit) as exc_info:
        create_server(taken)
    assert exc_info.value.code == 1
    assert not [r for r in caplog.records if r.name == "hello_service.server"]


def test_run_closes_socket_on_interrupt(settings, monkeypatch):
    closed = []

    class FakeServer:
        def serve_forever(self):
            raise KeyboardInterrupt

        def server_close(self):
            closed.append(True)

    monkeypatch.setattr(server_module, "create_server", lambda settings=None: FakeServer())
    monkeypatch.setattr(server_module.signal, "signal", lambda *args: None)
    server_module.run(settings)
    assert closed == [True]


def test_sigterm_handler_exits_cleanly():
    with pytest.raises(SystemExit) as exc_info:
        server_module._stop(15, None)
    assert exc_info.value.code == 0


# =======================================================
# Whole-process tests: the console entry point and gunicorn
# =======================================================
ROOT = Path(__file__).resolve().parents[1]


def _free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _process_env(port):
    env = dict(os.environ, PORT=str(port), HOST="127.0.0.1", PYTHONUNBUFFERED="1")
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(ROOT), env.get("PYTHONPATH")]))
    return env


def _wait_until_up(port, process, timeout=15):
    deadline = time.time() + timeout
    while time.time() < deadline:
        assert process.poll() is None, "server exited before it was ready"
        try:
            if httpx.get(f"http://127.0.0.1:{port}/health", timeout=1).status_code == 200:
                return
        except httpx.TransportError:
            time.sleep(0.2)
    raise AssertionError(f"server on port {port} never came up")


def _terminate(process):
    process.terminate()
    try:
        return process.communicate(timeout=15)
    except subprocess.TimeoutExpired:
        process.kill()
        return process.communicate()


def _ready_lines(text):
    return [line for line in text.splitlines() if "is ready" in line]


def test_entry_point_end_to_end():
    port = _free_port()
    env = _process_env(port)
    first = subprocess.Popen(
        [sys.executable, "-m", "hello_service"],
        cwd=ROOT, env=env, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True,
    )
    try:
        _wait_until_up(port, first)
        response = httpx.get(f"http://127.0.0.1:{port}/")
        assert response.status_code == 200
        assert response.text == "Hello World!"

        second = subprocess.run(
            [sys.executable, "-m", "hello_service"],
            cwd=ROOT, env=env, capture_output=True, text=True, timeout=30,
        )
        assert second.returncode == 1
        assert _ready_lines(second.stdout) == []
    finally:
        out, _ = _terminate(first)

    assert first.returncode == 0
    assert len(_ready_lines(out)) == 1
    assert f"127.0.0.1:{port}" in _ready_lines(out)[0]


def test_gunicorn_ready_line_on_stdout():
    pytest.importorskip("gunicorn")
    port = _free_port()
    env = _process_env(port)
    env["WEB_CONCURRENCY"] = "1"
    process = subprocess.Popen(
        [sys.executable, "-m", "gunicorn", "--config", "gunicorn.conf.py", "hello_service.app:app"],
        cwd=ROOT, env=env, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True,
    )
    try:
        _wait_until_up(port, process)
    finally:
        out, err = _terminate(process)

    assert len(_ready_lines(out)) == 1
    assert _ready_lines(err) == []
