"""Status thresholds, metadata fallback, config helpers and stats."""
import json

import pytest

import team_dashboard as td

NOW = 1_700_000_000_000
MINUTE = 60 * 1000


def _sessions(*ages_ms, tokens=0):
    return [{"sessionId": f"s{i}", "updatedAt": NOW - age, "totalTokens": tokens}
            for i, age in enumerate(ages_ms)]


class TestAgentStatus:
    def test_no_sessions_is_idle(self):
        assert td.agent_status([], NOW) == "idle"

    @pytest.mark.parametrize("age,expected", [
        (0, "busy"),
        (2 * MINUTE, "busy"),
        (5 * MINUTE - 1, "busy"),
        (5 * MINUTE, "active"),
        (30 * MINUTE - 1, "active"),
        (30 * MINUTE, "idle"),
        (24 * 60 * MINUTE, "idle"),
    ])
    def test_thresholds(self, age, expected):
        assert td.agent_status(_sessions(age), NOW) == expected

    def test_uses_most_recent_session(self):
        assert td.agent_status(_sessions(3 * 60 * MINUTE, MINUTE, 40 * MINUTE), NOW) == "busy"

    def test_defaults_to_wall_clock(self):
        assert td.agent_status(_sessions(0)) in ("busy", "active", "idle")


def test_last_active():
    assert td.last_active([]) is None
    assert td.last_active(_sessions(10 * MINUTE, MINUTE)) == NOW - MINUTE


def test_total_tokens():
    assert td.total_tokens([]) == 0
    assert td.total_tokens(_sessions(1, 2, 3, tokens=40)) == 120


class TestAgentMeta:
    def test_known_agent(self):
        meta = td.agent_meta("bookkeeper")
        assert meta["emoji"] == "📊"
        assert meta["role"] == "Bookkeeper"

    def test_unknown_agent_falls_back(self):
        meta = td.agent_meta("scout", "Scout")
        assert meta == {
            "emoji": "🤖",
            "role": "Agent",
            "color": "from-gray-500 to-gray-600",
            "description": "AI agent: Scout",
            "expertise": ["General"],
        }

    def test_fallback_description_uses_id_without_name(self):
        assert td.agent_meta("scout")["description"] == "AI agent: scout"

    def test_returns_a_copy(self):
        td.agent_meta("dev")["expertise"].append("Juggling")
        assert "Juggling" not in td.AGENT_META["dev"]["expertise"]


class TestGatewayConfig:
    def test_missing_file(self, tmp_path):
        with pytest.raises(td.GatewayConfigError, match="not found"):
            td.load_gateway_config(str(tmp_path / "nope.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "c.json"
        path.write_text("{oops")
        with pytest.raises(td.GatewayConfigError, match="Invalid JSON"):
            td.load_gateway_config(str(path))

    @pytest.mark.parametrize("payload", [[], {"agents": {}}, {"agents": {"list": {}}}, {"channels": {}}])
    def test_missing_agent_list(self, tmp_path, payload):
        path = tmp_path / "c.json"
        path.write_text(json.dumps(payload))
        with pytest.raises(td.GatewayConfigError):
            td.load_gateway_config(str(path))

    def test_configured_agents_skips_main_and_duplicates(self):
        config = {"agents": {"list": [
            {"id": "main"}, {"id": "dev", "name": "A"}, {"id": "dev", "name": "B"}, {"name": "no id"}, {"id": "sera"},
        ]}}
        agents = td.configured_agents(config)
        assert [a["id"] for a in agents] == ["dev", "sera"]
        assert agents[0]["name"] == "A"

    def test_default_model(self):
        assert td.default_model({"agents": {"defaults": {"model": {"primary": "m1"}}, "list": []}}) == "m1"
        assert td.default_model({"agents": {"list": []}}) is None

    def test_telegram_account(self):
        config = {"channels": {"telegram": {"accounts": {"dev": {"name": "Max Bot"}}}}}
        assert td.telegram_account(config, "dev") == {"name": "Max Bot"}
        assert td.telegram_account(config, "sera") is None
        assert td.telegram_account({}, "dev") is None


def test_compute_stats_buckets_add_up():
    agents = [
        {"status": "busy", "totalTokens": 10, "sessionCount": 1},
        {"status": "active", "totalTokens": 20, "sessionCount": 2},
        {"status": "idle", "totalTokens": 0, "sessionCount": 0},
        {"status": "idle", "totalTokens": 5, "sessionCount": 4},
    ]
    stats = td.compute_stats(agents)
    assert stats == {
        "totalAgents": 4,
        "activeAgents": 1,
        "busyAgents": 1,
        "idleAgents": 2,
        "totalTokensAllAgents": 35,
        "totalSessions": 7,
    }


def test_compute_stats_empty():
    stats = td.compute_stats([])
    assert stats["totalAgents"] == 0
    assert stats["totalTokensAllAgents"] == 0


def test_telegram_accounts_not_a_mapping():
    config = {"channels": {"telegram": {"accounts": [{"name": "Max Bot"}]}}}
    assert td.telegram_account(config, "dev") is None
    assert td.telegram_account({"channels": "telegram"}, "dev") is None


def test_configured_agents_skips_non_string_ids():
    config = {"agents": {"list": [{"id": 5}, {"id": ["dev"]}, {"id": ""}, {"id": "sera"}]}}
    assert [a["id"] for a in td.configured_agents(config)] == ["sera"]


@pytest.mark.parametrize("tools,expected", [
    ({"deny": ["exec", "browser"]}, ["exec", "browser"]),
    ({"deny": "exec"}, []),
    ({"deny": ["exec", 7, None]}, ["exec"]),
    (["exec"], []),
    (None, []),
])
def test_tool_restrictions(tools, expected):
    assert td.tool_restrictions({"id": "dev", "tools": tools}) == expected
