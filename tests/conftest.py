"""
Shared fixtures for the team dashboard test suite.
"""
import os
import sys
import json
import socket
import subprocess
import time
import pytest
import requests

import team_dashboard

REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

GATEWAY_CONFIG = {
    "agents": {
        "defaults": {"model": {"primary": "anthropic/claude-opus-4-5"}},
        "list": [
            {"id": "main", "name": "Jimmy"},
            {"id": "bookkeeper", "name": "Nora", "workspace": "/srv/agents/books"},
            {"id": "dev", "name": "Max", "model": "anthropic/claude-sonnet-4",
             "tools": {"deny": ["exec", "browser"]}},
            {"id": "scout", "name": "Scout"},
        ],
    },
    "channels": {
        "telegram": {
            "accounts": {
                "dev": {"name": "Max Bot", "botToken": "123:abc"},
            }
        }
    },
}


def usage_line(tokens):
    return json.dumps({"type": "message", "usage": {"totalTokens": tokens}})


def write_session(sessions_dir, session_id, lines, age_seconds=0):
    """Write a .jsonl transcript and backdate its mtime."""
    os.makedirs(sessions_dir, exist_ok=True)
    path = os.path.join(sessions_dir, f"{session_id}.jsonl")
    with open(path, "w") as f:
        f.write("\n".join(lines) + "\n")
    ts = time.time() - age_seconds
    os.utime(path, (ts, ts))
    return path


def build_gateway_home(root):
    """Config file plus agents/ tree covering busy, active and idle agents."""
    config_path = os.path.join(root, "clawdbot.json")
    with open(config_path, "w") as f:
        json.dump(GATEWAY_CONFIG, f)

    agents_dir = os.path.join(root, "agents")
    write_session(os.path.join(agents_dir, "main", "sessions"), "owner-1", [usage_line(999)])
    write_session(
        os.path.join(agents_dir, "bookkeeper", "sessions"), "books-1",
        [usage_line(100), "{not json", usage_line(100)],
        age_seconds=120,
    )
    write_session(os.path.join(agents_dir, "dev", "sessions"), "dev-a", [usage_line(50)], age_seconds=600)
    write_session(os.path.join(agents_dir, "dev", "sessions"), "dev-b", [usage_line(25)], age_seconds=7200)
    os.makedirs(os.path.join(agents_dir, "scout", "sessions"))
    return config_path, agents_dir


@pytest.fixture
def gateway_home(tmp_path):
    config_path, agents_dir = build_gateway_home(str(tmp_path))
    return {"root": str(tmp_path), "config": config_path, "agents": agents_dir}


@pytest.fixture
def dashboard(monkeypatch, gateway_home):
    """The dashboard module pointed at the temporary gateway home."""
    monkeypatch.setattr(team_dashboard, "CONFIG_PATH", gateway_home["config"])
    monkeypatch.setattr(team_dashboard, "AGENTS_DIR", gateway_home["agents"])
    monkeypatch.setattr(team_dashboard, "API_BASE", "")
    return team_dashboard


@pytest.fixture
def client(dashboard):
    dashboard.app.config["TESTING"] = True
    with dashboard.app.test_client() as c:
        yield c


# ── Live server ─────────────────────────────────────────────────────────

def _free_port():
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


def _is_server_running(base_url):
    """Check if the dashboard server is reachable."""
    try:
        r = requests.get(f"{base_url}/api/health", timeout=5)
        return r.status_code == 200
    except requests.exceptions.ConnectionError:
        return False


@pytest.fixture(scope="session")
def live_server(tmp_path_factory):
    """Run the real CLI against a temporary gateway home."""
    root = str(tmp_path_factory.mktemp("gateway"))
    config_path, agents_dir = build_gateway_home(root)
    port = _free_port()
    base_url = f"http://127.0.0.1:{port}"

    proc = subprocess.Popen(
        [sys.executable, os.path.join(REPO_ROOT, "team_dashboard.py"),
         "--host", "127.0.0.1", "--port", str(port),
         "--config", config_path, "--agents-dir", agents_dir],
        cwd=REPO_ROOT,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )

    # Wait up to 10 seconds
    for _ in range(20):
        time.sleep(0.5)
        if _is_server_running(base_url):
            break
    else:
        proc.terminate()
        pytest.fail("Dashboard server failed to start")

    yield base_url

    proc.terminate()
    proc.wait(timeout=10)
