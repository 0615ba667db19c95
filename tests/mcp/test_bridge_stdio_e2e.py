"""Tests e2e: `python -m taskbridge run-mcp-server` sur de vrais pipes.

Le bridge est lancé en sous-processus; on vérifie qu'une session MCP complète
(initialize, notification, tools/list, tools/call, erreurs) ne produit sur
stdout que des lignes JSON-RPC, dans l'ordre des requêtes.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
FIXTURE_TASKS = REPO_ROOT / "tests" / "fixtures" / "sample_tasks.py"


def _send(proc: subprocess.Popen[bytes], msg: dict[str, object] | str) -> None:
    line = msg if isinstance(msg, str) else json.dumps(msg, ensure_ascii=False)
    proc.stdin.write((line + "\n").encode("utf-8"))
    proc.stdin.flush()


def _recv_line(proc: subprocess.Popen[bytes]) -> dict[str, object]:
    raw = proc.stdout.readline()
    if not raw:
        raise RuntimeError("EOF from bridge")
    return json.loads(raw.decode("utf-8", errors="replace"))


@pytest.fixture
def bridge(tmp_path):
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(
        p for p in (str(REPO_ROOT / "src"), env.get("PYTHONPATH", "")) if p
    )
    log_file = tmp_path / "mcp.log"
    proc = subprocess.Popen(
        [
            sys.executable,
            "-m",
            "taskbridge",
            "-f",
            str(FIXTURE_TASKS),
            "run-mcp-server",
            "--log-file",
            str(log_file),
        ],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        cwd=tmp_path,
        env=env,
    )
    try:
        yield proc, log_file
    finally:
        if proc.poll() is None:
            proc.kill()
        proc.wait(timeout=10)
        for stream in (proc.stdin, proc.stdout, proc.stderr):
            if stream is not None and not stream.closed:
                stream.close()


@pytest.mark.e2e
def test_full_session_over_stdio(bridge):
    proc, log_file = bridge

    _send(proc, {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}})
    init = _recv_line(proc)
    assert init["id"] == 1
    assert init["result"]["protocolVersion"] == "2024-11-05"

    _send(proc, {"jsonrpc": "2.0", "method": "notifications/initialized"})

    _send(proc, {"jsonrpc": "2.0", "id": 2, "method": "tools/list"})
    listing = _recv_line(proc)
    assert listing["id"] == 2
    names = [tool["name"] for tool in listing["result"]["tools"]]
    assert "greet" in names
    assert "run-mcp-server" not in names

    _send(
        proc,
        {
            "jsonrpc": "2.0",
            "id": 3,
            "method": "tools/call",
            "params": {"name": "greet", "arguments": {"arguments": {"x": "Ada"}, "options": {"verbose": True}}},
        },
    )
    call = _recv_line(proc)
    assert call["id"] == 3
    assert call["result"] == {"content": [{"type": "text", "text": "Hello Ada!\n"}], "isError": False}

    _send(proc, "{broken")
    broken = _recv_line(proc)
    assert broken["id"] == 0
    assert broken["error"]["code"] == -32000

    _send(proc, {"jsonrpc": "2.0", "id": 4, "method": "foo/bar"})
    unknown = _recv_line(proc)
    assert unknown["id"] == 4
    assert unknown["error"]["code"] == -32601

    proc.stdin.close()
    assert proc.wait(timeout=10) == 0
    assert proc.stdout.read() == b""

    log = log_file.read_text(encoding="utf-8")
    assert "Starting MCP server" in log
    assert "Received: {broken" in log
    assert "Sending: " in log


@pytest.mark.e2e
def test_message_split_across_writes(bridge):
    proc, _ = bridge

    payload = json.dumps({"jsonrpc": "2.0", "id": 9, "method": "initialize"}).encode("utf-8")
    proc.stdin.write(payload[:10])
    proc.stdin.flush()
    proc.stdin.write(payload[10:] + b"\n")
    proc.stdin.flush()

    assert _recv_line(proc)["id"] == 9


@pytest.mark.e2e
def test_lone_surrogate_does_not_kill_the_bridge(bridge):
    proc, _ = bridge

    _send(proc, r'{"jsonrpc":"2.0","id":1,"method":"\ud800"}')
    error = _recv_line(proc)
    assert error["id"] == 1
    assert error["error"]["code"] == -32601

    _send(proc, {"jsonrpc": "2.0", "id": 2, "method": "initialize"})
    assert _recv_line(proc)["id"] == 2

    proc.stdin.close()
    assert proc.wait(timeout=10) == 0


@pytest.mark.e2e
def test_child_process_output_stays_off_the_protocol_stream(bridge):
    proc, _ = bridge

    _send(
        proc,
        {
            "jsonrpc": "2.0",
            "id": 5,
            "method": "tools/call",
            "params": {"name": "shell-echo", "arguments": {"arguments": {"text": "LEAKED"}}},
        },
    )
    _send(
        proc,
        {
            "jsonrpc": "2.0",
            "id": 6,
            "method": "tools/call",
            "params": {"name": "async-sum", "arguments": {"arguments": {"a": "20", "b": "22"}}},
        },
    )
    proc.stdin.close()
    assert proc.wait(timeout=10) == 0

    lines = proc.stdout.read().decode("utf-8").splitlines()
    responses = [json.loads(line) for line in lines]
    assert [r["id"] for r in responses] == [5, 6]
    assert responses[0]["result"] == {
        "content": [{"type": "text", "text": "before\nLEAKED\n"}],
        "isError": False,
    }
    assert responses[1]["result"]["content"][0]["text"] == "42\n"
