#!/usr/bin/env python3
"""
Agent Team Dashboard — who's on the team and what they're up to 🚀

Read-only status board for Clawdbot/OpenClaw gateway agents.
Single-file Flask app: reads the gateway config and each agent's session
transcripts, and serves a polling card UI on top of one JSON endpoint.

Usage:
    team-dashboard                                  # Defaults (~/.clawdbot)
    team-dashboard --port 9000                      # Custom port
    team-dashboard --config ~/bot/clawdbot.json     # Custom gateway config
    CONFIG_PATH=... AGENTS_DIR=... team-dashboard

MIT License
"""

import os
import json
import math
import socket
import argparse
import time
from concurrent.futures import ThreadPoolExecutor
from flask import Flask, render_template_string, jsonify, make_response

__version__ = "0.1.0"

app = Flask(__name__)

# ── Configuration (overridable via CLI/env) ─────────────────────────────
DEFAULT_CONFIG_PATH = '~/.clawdbot/clawdbot.json'
DEFAULT_AGENTS_DIR = '~/.clawdbot/agents'

CONFIG_PATH = os.path.expanduser(os.environ.get('CONFIG_PATH', DEFAULT_CONFIG_PATH))
AGENTS_DIR = os.path.expanduser(os.environ.get('AGENTS_DIR', DEFAULT_AGENTS_DIR))
API_BASE = os.environ.get('API_BASE', '')

SESSION_EXT = '.jsonl'
TAIL_LINES = 20                 # only the most recent entries count toward tokens
BUSY_WINDOW_MS = 5 * 60 * 1000
ACTIVE_WINDOW_MS = 30 * 60 * 1000
MAX_SCAN_WORKERS = 8
OWNER_AGENT_ID = 'main'         # reserved for the owner, never listed as an agent


class GatewayConfigError(Exception):
    """The gateway config file is missing or unusable."""


def detect_config(args=None):
    """Resolve file locations, with CLI flags taking precedence over env."""
    global CONFIG_PATH, AGENTS_DIR, API_BASE

    if args and args.config:
        CONFIG_PATH = os.path.expanduser(args.config)
    else:
        CONFIG_PATH = os.path.expanduser(os.environ.get('CONFIG_PATH', DEFAULT_CONFIG_PATH))

    if args and args.agents_dir:
        AGENTS_DIR = os.path.expanduser(args.agents_dir)
    else:
        AGENTS_DIR = os.path.expanduser(os.environ.get('AGENTS_DIR', DEFAULT_AGENTS_DIR))

    if args and args.api_base is not None:
        API_BASE = args.api_base
    else:
        API_BASE = os.environ.get('API_BASE', '')
    API_BASE = API_BASE.rstrip('/')


def get_local_ip():
    """Get the machine's LAN IP address."""
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        ip = s.getsockname()[0]
        s.close()
        return ip
    except OSError:
        return "127.0.0.1"


# ── Agent Metadata ──────────────────────────────────────────────────────
# The "soul" of each agent: how it's presented, keyed by gateway agent id.

AGENT_META = {
    'main': {
        'emoji': '🤵',
        'role': 'Personal Assistant',
        'color': 'from-blue-500 to-cyan-500',
        'description': 'Your right hand for daily life. Calendar, reminders, research, and keeping things organized.',
        'expertise': ['Scheduling', 'Research', 'Organization', 'Communication'],
    },
    'bookkeeper': {
        'emoji': '📊',
        'role': 'Bookkeeper',
        'color': 'from-emerald-500 to-green-600',
        'description': 'Financial wizard handling books, reports, and keeping the numbers straight.',
        'expertise': ['Bookkeeping', 'Financial Reports', 'Invoicing', 'Tax Prep'],
    },
    'team': {
        'emoji': '🤝',
        'role': 'Team Support',
        'color': 'from-rose-500 to-pink-600',
        'description': 'Coordination and team operations. Keeps everyone aligned and moving forward.',
        'expertise': ['Coordination', 'Project Management', 'Team Ops', 'Documentation'],
    },
    'dev': {
        'emoji': '💻',
        'role': 'Dev Expert',
        'color': 'from-violet-500 to-purple-600',
        'description': 'Technical brain for code, debugging, architecture, and infrastructure.',
        'expertise': ['Development', 'Debugging', 'Architecture', 'DevOps'],
    },
    'julia': {
        'emoji': '✨',
        'role': 'Creative',
        'color': 'from-pink-500 to-fuchsia-600',
        'description': 'Creative mind for content, design ideas, and bringing projects to life.',
        'expertise': ['Content', 'Creative', 'Writing', 'Ideas'],
    },
    'sera': {
        'emoji': '🔮',
        'role': 'Strategist',
        'color': 'from-indigo-500 to-blue-600',
        'description': 'Strategic thinker for planning, analysis, and big-picture decisions.',
        'expertise': ['Strategy', 'Analysis', 'Planning', 'Research'],
    },
}

OWNER = {
    'id': 'josh',
    'name': 'Josh A',
    'role': 'Founder',
    'emoji': '👤',
    'color': 'from-amber-500 to-orange-600',
    'description': 'The human behind the operation. Entrepreneur, builder, visionary.',
    'expertise': ['Strategy', 'Vision', 'Decisions'],
    'status': 'active',
}


def agent_meta(agent_id, name=None):
    """Presentation record for an agent id, with a generic fallback."""
    meta = AGENT_META.get(agent_id)
    if meta is None:
        return {
            'emoji': '🤖',
            'role': 'Agent',
            'color': 'from-gray-500 to-gray-600',
            'description': f'AI agent: {name or agent_id}',
            'expertise': ['General'],
        }
    return {k: (list(v) if isinstance(v, list) else v) for k, v in meta.items()}


# ── Gateway Config ──────────────────────────────────────────────────────

def load_gateway_config(path=None):
    """Read the gateway config; raise GatewayConfigError if it's unusable."""
    path = path or CONFIG_PATH
    try:
        with open(path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except FileNotFoundError:
        raise GatewayConfigError(f'Gateway config not found: {path}')
    except (OSError, UnicodeDecodeError) as e:
        raise GatewayConfigError(f'Cannot read gateway config {path}: {e}')
    except json.JSONDecodeError as e:
        raise GatewayConfigError(f'Invalid JSON in gateway config {path}: {e}')

    if not isinstance(config, dict):
        raise GatewayConfigError('Gateway config must be a JSON object')
    agents = config.get('agents')
    if not isinstance(agents, dict) or not isinstance(agents.get('list'), list):
        raise GatewayConfigError('Gateway config has no agents.list')
    return config


def default_model(config):
    """agents.defaults.model.primary, or None when unset."""
    defaults = config.get('agents', {}).get('defaults')
    if not isinstance(defaults, dict):
        return None
    model = defaults.get('model')
    if isinstance(model, dict):
        return model.get('primary')
    return model or None


def _section(parent, key):
    value = parent.get(key) if isinstance(parent, dict) else None
    return value if isinstance(value, dict) else {}


def telegram_account(config, agent_id):
    accounts = _section(_section(_section(config, 'channels'), 'telegram'), 'accounts')
    account = accounts.get(agent_id)
    return account if isinstance(account, dict) else None


def tool_restrictions(agent):
    """tools.deny as a list of names; anything else counts as no restrictions."""
    deny = _section(agent, 'tools').get('deny')
    if not isinstance(deny, list):
        return []
    return [t for t in deny if isinstance(t, str)]


def configured_agents(config):
    """Agent entries from the config, minus the owner slot and duplicate ids."""
    seen = set()
    agents = []
    for entry in config['agents']['list']:
        if not isinstance(entry, dict) or not isinstance(entry.get('id'), str) or not entry['id']:
            continue
        agent_id = entry['id']
        if agent_id == OWNER_AGENT_ID or agent_id in seen:
            continue
        seen.add(agent_id)
        agents.append(entry)
    return agents


def list_agent_dirs(agents_dir=None):
    """Names under the agents root. OSError propagates: no root, no snapshot."""
    return sorted(os.listdir(agents_dir or AGENTS_DIR))


# ── Session Scanning ────────────────────────────────────────────────────

def _reject_constant(name):
    raise ValueError(f'non-finite number {name}')


def parse_usage_line(line):
    """Token count from one transcript line, or None if there isn't one."""
    try:
        entry = json.loads(line, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return None
    if not isinstance(entry, dict):
        return None
    usage = entry.get('usage')
    if not isinstance(usage, dict):
        return None
    tokens = usage.get('totalTokens')
    if isinstance(tokens, bool) or not isinstance(tokens, (int, float)):
        return None
    if isinstance(tokens, float) and not math.isfinite(tokens):  # e.g. 1e400
        return None
    return tokens


def estimate_tokens(text):
    """Sum usage.totalTokens over the last TAIL_LINES non-blank lines."""
    lines = [ln for ln in text.strip().split('\n') if ln.strip()]
    counts = (parse_usage_line(ln) for ln in lines[-TAIL_LINES:])
    return sum(c for c in counts if c is not None)


def read_session(path):
    """Build a session record from a transcript file; None if unreadable."""
    try:
        mtime = os.path.getmtime(path)
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        app.logger.debug('Skipping session %s: %s', path, e)
        return None
    fname = os.path.basename(path)
    return {
        'sessionId': fname[:-len(SESSION_EXT)],
        'updatedAt': int(mtime * 1000),
        'totalTokens': estimate_tokens(content),
    }


def get_sessions_for_agent(agent_id, agents_dir=None):
    """All readable sessions for one agent; [] if its sessions dir is missing."""
    sessions_dir = os.path.join(agents_dir or AGENTS_DIR, agent_id, 'sessions')
    try:
        files = [f for f in os.listdir(sessions_dir) if f.endswith(SESSION_EXT)]
    except OSError as e:
        app.logger.debug('No sessions for %s: %s', agent_id, e)
        return []
    if not files:
        return []

    paths = [os.path.join(sessions_dir, f) for f in files]
    with ThreadPoolExecutor(max_workers=min(MAX_SCAN_WORKERS, len(paths))) as ex:
        records = list(ex.map(read_session, paths))
    return [r for r in records if r is not None]


def last_active(sessions):
    if not sessions:
        return None
    return max(s['updatedAt'] for s in sessions)


def agent_status(sessions, now_ms=None):
    """busy (<5m), active (<30m) or idle, from the newest session mtime."""
    latest = last_active(sessions)
    if latest is None:
        return 'idle'
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    since = now_ms - latest
    if since < BUSY_WINDOW_MS:
        return 'busy'
    if since < ACTIVE_WINDOW_MS:
        return 'active'
    return 'idle'


def total_tokens(sessions):
    """Raw per-session sums added up, rounded once for the agent total."""
    total = sum(s.get('totalTokens') or 0 for s in sessions)
    if not math.isfinite(total):
        return 0
    return int(round(total))


# ── Snapshot Assembly ───────────────────────────────────────────────────

def build_agent_view(agent, config, now_ms, agents_dir=None):
    """Combine config entry, metadata and session activity for one agent."""
    agent_id = agent['id']
    account = telegram_account(config, agent_id)
    telegram_name = account.get('name') if account else None
    sessions = get_sessions_for_agent(agent_id, agents_dir)

    view = {
        'id': agent_id,
        'name': telegram_name or agent.get('name') or agent_id,
    }
    view.update(agent_meta(agent_id, agent.get('name')))
    view.update({
        'status': agent_status(sessions, now_ms),
        'model': agent.get('model') or default_model(config),
        'workspace': agent.get('workspace'),
        'lastActive': last_active(sessions),
        'totalTokens': total_tokens(sessions),
        'sessionCount': len(sessions),
        'telegramBot': telegram_name,
        'toolRestrictions': tool_restrictions(agent),
    })
    return view


def compute_stats(agents):
    counts = {'active': 0, 'busy': 0, 'idle': 0}
    for a in agents:
        counts[a['status']] += 1
    return {
        'totalAgents': len(agents),
        'activeAgents': counts['active'],
        'busyAgents': counts['busy'],
        'idleAgents': counts['idle'],
        'totalTokensAllAgents': sum(a['totalTokens'] for a in agents),
        'totalSessions': sum(a['sessionCount'] for a in agents),
    }


def collect_status(now_ms=None):
    """Full snapshot for /agents-status. Config and agents-root errors raise."""
    config = load_gateway_config(CONFIG_PATH)
    present = set(list_agent_dirs(AGENTS_DIR))
    if now_ms is None:
        now_ms = int(time.time() * 1000)

    entries = configured_agents(config)
    for entry in entries:
        if entry['id'] not in present:
            app.logger.debug('Agent %s has no directory under %s', entry['id'], AGENTS_DIR)

    agents = []
    if entries:
        # Views come back in config order regardless of which scan finishes first
        with ThreadPoolExecutor(max_workers=min(MAX_SCAN_WORKERS, len(entries))) as ex:
            agents = list(ex.map(lambda a: build_agent_view(a, config, now_ms, AGENTS_DIR), entries))

    return {
        'ok': True,
        'owner': dict(OWNER, expertise=list(OWNER['expertise'])),
        'agents': agents,
        'stats': compute_stats(agents),
        'timestamp': int(time.time() * 1000),
    }


# ── HTML Template ───────────────────────────────────────────────────────

DASHBOARD_HTML = r"""
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Your Team 🚀</title>
<link rel="preconnect" href="https://fonts.googleapis.com">
<link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;700&display=swap" rel="stylesheet">
<style>
  :root {
    --bg-primary: #f8fafc;
    --bg-card: #ffffff;
    --bg-hover: #f1f5f9;
    --bg-accent: #7c3aed;
    --border-primary: rgba(0,0,0,0.08);
    --text-primary: #0f172a;
    --text-secondary: #475569;
    --text-muted: #94a3b8;
    --text-success: #16a34a;
    --text-warning: #d97706;
    --text-error: #dc2626;
    --button-bg: #e2e8f0;
    --button-hover: #cbd5e1;
    --card-shadow: 0 1px 3px rgba(0,0,0,0.1);
    --card-shadow-hover: 0 6px 20px rgba(0,0,0,0.14);
  }

  [data-theme="dark"] {
    --bg-primary: #0b1120;
    --bg-card: #1e293b;
    --bg-hover: #273449;
    --bg-accent: #8b5cf6;
    --border-primary: #334155;
    --text-primary: #f1f5f9;
    --text-secondary: #cbd5e1;
    --text-muted: #64748b;
    --text-success: #4ade80;
    --text-warning: #fbbf24;
    --text-error: #f87171;
    --button-bg: #334155;
    --button-hover: #475569;
    --card-shadow: 0 1px 3px rgba(0,0,0,0.4);
    --card-shadow-hover: 0 6px 20px rgba(0,0,0,0.5);
  }

  * { box-sizing: border-box; margin: 0; padding: 0; }
  body { font-family: -apple-system, BlinkMacSystemFont, 'Inter', 'Segoe UI', Roboto, sans-serif; background: var(--bg-primary); color: var(--text-primary); min-height: 100vh; font-size: 14px; line-height: 1.5; -webkit-font-smoothing: antialiased; }

  header { text-align: center; padding: 32px 16px 16px; position: relative; }
  header h1 { font-size: 32px; font-weight: 700; letter-spacing: -0.5px; }
  header p { color: var(--text-secondary); }
  .theme-toggle { position: absolute; top: 16px; right: 16px; background: var(--button-bg); border: none; border-radius: 8px; padding: 8px 12px; cursor: pointer; font-size: 16px; }
  .theme-toggle:hover { background: var(--button-hover); }

  main { max-width: 960px; margin: 0 auto; padding: 0 16px 32px; }
  .refresh-bar { display: flex; justify-content: center; align-items: center; gap: 8px; color: var(--text-muted); font-size: 12px; margin-bottom: 16px; }
  .refresh-bar .stale { color: var(--text-warning); }

  .stats { display: flex; flex-wrap: wrap; justify-content: center; gap: 24px; margin-bottom: 32px; }
  .stat { text-align: center; min-width: 64px; }
  .stat .value { font-size: 24px; font-weight: 700; }
  .stat .label { font-size: 11px; color: var(--text-muted); text-transform: uppercase; letter-spacing: 0.5px; }
  .stat.active .value { color: var(--text-success); }
  .stat.busy .value { color: var(--text-warning); }

  .owner-row { display: flex; justify-content: center; margin-bottom: 32px; }
  .grid { display: flex; flex-wrap: wrap; justify-content: center; gap: 20px; }

  .card { position: relative; width: 128px; height: 128px; background: var(--bg-card); border: 1px solid var(--border-primary); border-radius: 16px; box-shadow: var(--card-shadow); display: flex; flex-direction: column; align-items: center; justify-content: center; padding: 12px; cursor: pointer; transition: transform 0.2s, box-shadow 0.2s; animation: float 6s ease-in-out infinite; }
  .card:hover { transform: scale(1.05); box-shadow: var(--card-shadow-hover); background: var(--bg-hover); }
  .card.owner { width: 144px; height: 144px; }
  .card .emoji { font-size: 32px; margin-bottom: 4px; }
  .card.owner .emoji { font-size: 40px; }
  .card .name { font-weight: 600; font-size: 14px; text-align: center; }
  .card .role { font-size: 12px; color: var(--text-muted); text-align: center; }
  .dot { position: absolute; top: 10px; right: 10px; width: 8px; height: 8px; border-radius: 50%; background: var(--text-muted); }
  .dot.active { background: var(--text-success); animation: pulse 2s infinite; }
  .dot.busy { background: var(--text-warning); animation: pulse 1s infinite; }

  .badge { display: inline-block; font-size: 11px; padding: 2px 8px; border-radius: 999px; border: 1px solid var(--border-primary); }
  .badge.active { color: var(--text-success); border-color: var(--text-success); }
  .badge.busy { color: var(--text-warning); border-color: var(--text-warning); }
  .badge.idle { color: var(--text-muted); }

  .actions { margin-top: 40px; text-align: center; color: var(--text-muted); font-size: 13px; }
  .btn { background: var(--button-bg); color: var(--text-primary); border: none; border-radius: 8px; padding: 8px 16px; font-size: 13px; font-weight: 500; cursor: pointer; }
  .btn:hover { background: var(--button-hover); }
  .btn.primary { background: var(--bg-accent); color: #fff; }
  .btn.primary:hover { filter: brightness(1.1); }

  .center-msg { text-align: center; padding: 80px 16px; color: var(--text-secondary); }
  .center-msg .big { font-size: 40px; margin-bottom: 12px; }
  .center-msg.error { color: var(--text-error); }
  .spinner { width: 32px; height: 32px; border: 3px solid var(--button-bg); border-top-color: var(--bg-accent); border-radius: 50%; margin: 0 auto 12px; animation: spin 0.8s linear infinite; }

  .modal-overlay { position: fixed; inset: 0; background: rgba(0,0,0,0.6); backdrop-filter: blur(4px); display: none; align-items: center; justify-content: center; padding: 16px; z-index: 50; }
  .modal-overlay.open { display: flex; }
  .modal-card { background: var(--bg-card); border: 1px solid var(--border-primary); border-radius: 16px; max-width: 440px; width: 100%; padding: 24px; box-shadow: var(--card-shadow-hover); max-height: 90vh; overflow-y: auto; }
  .modal-header { display: flex; justify-content: space-between; align-items: flex-start; margin-bottom: 16px; gap: 12px; }
  .modal-header .avatar { width: 64px; height: 64px; border-radius: 12px; background: var(--bg-hover); display: flex; align-items: center; justify-content: center; font-size: 32px; flex-shrink: 0; }
  .modal-header h2 { font-size: 20px; }
  .modal-close { font-size: 24px; color: var(--text-muted); cursor: pointer; line-height: 1; }
  .modal-close:hover { color: var(--text-primary); }
  .section { margin-top: 14px; }
  .section h3 { font-size: 12px; font-weight: 600; color: var(--text-muted); margin-bottom: 6px; }
  .chips { display: flex; flex-wrap: wrap; gap: 6px; }
  .chip { background: var(--bg-hover); border-radius: 6px; padding: 2px 8px; font-size: 12px; color: var(--text-secondary); }
  .kv { display: grid; grid-template-columns: auto 1fr; gap: 4px 12px; font-size: 13px; }
  .kv dt { color: var(--text-muted); }
  .kv dd { word-break: break-all; }
  .form-row { margin-bottom: 12px; }
  .form-row label { display: block; font-size: 12px; color: var(--text-muted); margin-bottom: 4px; }
  .form-row input, .form-row textarea { width: 100%; padding: 8px; border-radius: 8px; border: 1px solid var(--border-primary); background: var(--bg-primary); color: var(--text-primary); font: inherit; }
  .preview-note { font-size: 11px; color: var(--text-warning); margin-bottom: 12px; }

  .toast { position: fixed; bottom: 24px; left: 50%; transform: translateX(-50%); background: var(--text-success); color: #fff; padding: 10px 18px; border-radius: 10px; box-shadow: var(--card-shadow-hover); display: none; z-index: 60; }
  .toast.show { display: block; }

  footer { text-align: center; color: var(--text-muted); font-size: 12px; padding: 32px 0; }

  @keyframes float { 0%, 100% { translate: 0 0; } 50% { translate: 0 -6px; } }
  @keyframes pulse { 0%, 100% { opacity: 1; } 50% { opacity: 0.4; } }
  @keyframes spin { to { transform: rotate(360deg); } }
</style>
</head>
<body data-theme="light"><script>var t=localStorage.getItem('team-dashboard-theme');if(t==='dark')document.body.setAttribute('data-theme','dark');</script>
<header>
  <div class="theme-toggle" onclick="toggleTheme()" title="Toggle theme">🌙</div>
  <h1>🚀 Your Team</h1>
  <p>AI agents working for you, 24/7</p>
</header>

<main>
  <div id="app">
    <div class="center-msg" id="loading"><div class="spinner"></div>Loading your team...</div>
  </div>
</main>

<!-- Agent Detail Modal -->
<div class="modal-overlay" id="detail-overlay" onclick="if(event.target===this)closeDetail()">
  <div class="modal-card" id="detail-card"></div>
</div>

<!-- Request Agent Modal (preview only: nothing is sent to the gateway) -->
<div class="modal-overlay" id="request-overlay" onclick="if(event.target===this)closeRequest()">
  <div class="modal-card">
    <div class="modal-header">
      <h2>Request a new agent</h2>
      <div class="modal-close" onclick="closeRequest()">&times;</div>
    </div>
    <div class="preview-note">Preview: requests are not sent to the gateway yet.</div>
    <form id="request-form" onsubmit="submitRequest(event)">
      <div class="form-row"><label for="req-name">Name</label><input id="req-name" required></div>
      <div class="form-row"><label for="req-role">Role</label><input id="req-role" required></div>
      <div class="form-row"><label for="req-desc">What should it do?</label><textarea id="req-desc" rows="3"></textarea></div>
      <button class="btn primary" type="submit">Send request</button>
    </form>
  </div>
</div>

<div class="toast" id="toast"></div>

<footer>Powered by Clawdbot 🦞</footer>

<script>
var API_BASE = {{ api_base|tojson }};
var POLL_MS = 30000;
var _snapshot = null;
var _pollTimer = null;
var _lastError = null;

var STATUS_LABELS = { active: '● Online', busy: '● Working', idle: '○ Idle' };

function escHtml(s) { return String(s == null ? '' : s).replace(/&/g,'&amp;').replace(/</g,'&lt;').replace(/>/g,'&gt;').replace(/"/g,'&quot;'); }

function timeAgo(ms) {
  if (!ms) return 'never';
  var diff = Date.now() - ms;
  if (diff < 60000) return Math.floor(diff/1000) + 's ago';
  if (diff < 3600000) return Math.floor(diff/60000) + 'm ago';
  if (diff < 86400000) return Math.floor(diff/3600000) + 'h ago';
  return Math.floor(diff/86400000) + 'd ago';
}

function fmtTokens(n) { n = n || 0; return n >= 1000000 ? (n/1000000).toFixed(1) + 'M' : n >= 1000 ? (n/1000).toFixed(0) + 'K' : String(n); }

function toggleTheme() {
  var dark = document.body.getAttribute('data-theme') !== 'dark';
  document.body.setAttribute('data-theme', dark ? 'dark' : 'light');
  localStorage.setItem('team-dashboard-theme', dark ? 'dark' : 'light');
}

async function loadStatus() {
  try {
    var r = await fetch(API_BASE + '/agents-status', { cache: 'no-store' });
    var data = await r.json();
    if (!r.ok || !data.ok) throw new Error(data.error || ('HTTP ' + r.status));
    _snapshot = data;
    _lastError = null;
  } catch (e) {
    // Keep showing the last good snapshot; only the first load blocks on errors
    _lastError = e.message || String(e);
    console.warn('Agent status refresh failed:', _lastError);
  }
  render();
}

function startPolling() {
  stopPolling();
  loadStatus();
  _pollTimer = setInterval(loadStatus, POLL_MS);
}

function stopPolling() {
  if (_pollTimer) clearInterval(_pollTimer);
  _pollTimer = null;
}

function retry() {
  document.getElementById('app').innerHTML = '<div class="center-msg"><div class="spinner"></div>Loading your team...</div>';
  startPolling();
}

function cardHtml(agent, kind, idx) {
  var cls = kind === 'owner' ? 'card owner' : 'card';
  var delay = kind === 'owner' ? 0 : idx * 0.5;
  return '<div class="' + cls + '" style="animation-delay:' + delay + 's" onclick="openDetail(\'' + kind + '\',' + idx + ')">'
    + '<div class="dot ' + escHtml(agent.status) + '"></div>'
    + '<div class="emoji">' + escHtml(agent.emoji) + '</div>'
    + '<div class="name">' + escHtml(agent.name) + '</div>'
    + '<div class="role">' + escHtml(agent.role) + '</div>'
    + '</div>';
}

function statHtml(value, label, cls) {
  return '<div class="stat ' + (cls || '') + '"><div class="value">' + value + '</div><div class="label">' + label + '</div></div>';
}

function render() {
  var app = document.getElementById('app');
  if (!_snapshot) {
    if (_lastError) {
      stopPolling();
      app.innerHTML = '<div class="center-msg error"><div class="big">⚠️</div>'
        + '<div>Could not load agent status</div>'
        + '<div style="font-size:12px;margin:8px 0 16px;">' + escHtml(_lastError) + '</div>'
        + '<button class="btn primary" onclick="retry()">Retry</button></div>';
    }
    return;
  }

  var s = _snapshot.stats;
  var html = '<div class="refresh-bar"><span>Updated ' + new Date(_snapshot.timestamp).toLocaleTimeString() + '</span>';
  if (_lastError) html += '<span class="stale">· last refresh failed</span>';
  html += '<button class="btn" style="padding:2px 10px;" onclick="loadStatus()">↻</button></div>';

  html += '<div class="stats">'
    + statHtml(s.totalAgents, 'Agents')
    + statHtml(s.activeAgents, 'Active', 'active')
    + statHtml(s.busyAgents, 'Working', 'busy')
    + statHtml(s.idleAgents, 'Idle')
    + statHtml(fmtTokens(s.totalTokensAllAgents), 'Tokens')
    + statHtml(s.totalSessions, 'Sessions')
    + '</div>';

  html += '<div class="owner-row">' + cardHtml(_snapshot.owner, 'owner', 0) + '</div>';
  html += '<div class="grid">';
  _snapshot.agents.forEach(function(a, i) { html += cardHtml(a, 'agent', i); });
  if (!_snapshot.agents.length) html += '<div style="color:var(--text-muted);">No agents configured</div>';
  html += '</div>';

  html += '<div class="actions"><p style="margin-bottom:12px;">Click any agent to see details</p>'
    + '<button class="btn primary" onclick="openRequest()">+ Request Agent</button></div>';
  app.innerHTML = html;
}

function openDetail(kind, idx) {
  if (!_snapshot) return;
  var a = kind === 'owner' ? _snapshot.owner : _snapshot.agents[idx];
  if (!a) return;
  var html = '<div class="modal-header"><div style="display:flex;gap:14px;align-items:center;">'
    + '<div class="avatar">' + escHtml(a.emoji) + '</div><div>'
    + '<h2>' + escHtml(a.name) + '</h2>'
    + '<div style="color:var(--text-secondary);">' + escHtml(a.role) + '</div>'
    + '<span class="badge ' + escHtml(a.status) + '">' + (STATUS_LABELS[a.status] || a.status) + '</span>'
    + '</div></div><div class="modal-close" onclick="closeDetail()">&times;</div></div>';
  html += '<p style="color:var(--text-secondary);">' + escHtml(a.description) + '</p>';

  html += '<div class="section"><h3>💪 Expertise</h3><div class="chips">';
  (a.expertise || []).forEach(function(x) { html += '<span class="chip">' + escHtml(x) + '</span>'; });
  html += '</div></div>';

  if (kind !== 'owner') {
    html += '<div class="section"><h3>📈 Activity</h3><dl class="kv">'
      + '<dt>Last active</dt><dd>' + timeAgo(a.lastActive) + '</dd>'
      + '<dt>Sessions</dt><dd>' + a.sessionCount + '</dd>'
      + '<dt>Tokens</dt><dd>' + fmtTokens(a.totalTokens) + '</dd>'
      + '<dt>Model</dt><dd>' + escHtml(a.model || '—') + '</dd>'
      + (a.telegramBot ? '<dt>Telegram</dt><dd>' + escHtml(a.telegramBot) + '</dd>' : '')
      + (a.workspace ? '<dt>Workspace</dt><dd>' + escHtml(a.workspace) + '</dd>' : '')
      + '</dl></div>';
    if (a.toolRestrictions && a.toolRestrictions.length) {
      html += '<div class="section"><h3>🚫 Restricted tools</h3><div class="chips">';
      a.toolRestrictions.forEach(function(x) { html += '<span class="chip">' + escHtml(x) + '</span>'; });
      html += '</div></div>';
    }
  }
  document.getElementById('detail-card').innerHTML = html;
  document.getElementById('detail-overlay').classList.add('open');
}

function closeDetail() { document.getElementById('detail-overlay').classList.remove('open'); }

function openRequest() { document.getElementById('request-overlay').classList.add('open'); }
function closeRequest() { document.getElementById('request-overlay').classList.remove('open'); }

function submitRequest(e) {
  e.preventDefault();
  var req = {
    name: document.getElementById('req-name').value.trim(),
    role: document.getElementById('req-role').value.trim(),
    description: document.getElementById('req-desc').value.trim()
  };
  // Stub: no provisioning API exists on the gateway side
  console.log('New agent requested:', req);
  document.getElementById('request-form').reset();
  closeRequest();
  showToast('Request for ' + (req.name || 'new agent') + ' sent ✓');
}

function showToast(msg) {
  var el = document.getElementById('toast');
  el.textContent = msg;
  el.classList.add('show');
  setTimeout(function() { el.classList.remove('show'); }, 3000);
}

document.addEventListener('keydown', function(e) {
  if (e.key === 'Escape') { closeDetail(); closeRequest(); }
});

window.addEventListener('pagehide', stopPolling);

document.addEventListener('DOMContentLoaded', startPolling);
</script>
</body>
</html>
"""


# ── API Routes ──────────────────────────────────────────────────────────

@app.route('/')
def index():
    resp = make_response(render_template_string(DASHBOARD_HTML, api_base=API_BASE))
    resp.headers['Cache-Control'] = 'no-store, no-cache, must-revalidate, max-age=0'
    return resp


@app.route('/agents-status')
@app.route('/api/agents')
def api_agents_status():
    """Snapshot of every configured agent plus team stats."""
    try:
        return jsonify(collect_status())
    except Exception as e:
        app.logger.exception('Error fetching agent data')
        return jsonify({'ok': False, 'error': str(e) or e.__class__.__name__}), 500


@app.route('/api/health')
def api_health():
    """Can we see the gateway's files at all?"""
    config_ok = os.path.isfile(CONFIG_PATH) and os.access(CONFIG_PATH, os.R_OK)
    agents_ok = os.path.isdir(AGENTS_DIR) and os.access(AGENTS_DIR, os.R_OK | os.X_OK)
    return jsonify({
        'ok': config_ok and agents_ok,
        'version': __version__,
        'configPath': CONFIG_PATH,
        'agentsDir': AGENTS_DIR,
        'configReadable': config_ok,
        'agentsDirReadable': agents_ok,
    })


# ── CLI Entry Point ─────────────────────────────────────────────────────

BANNER = r"""
  🚀  Your Team — agent dashboard v{version}
      AI agents working for you, 24/7
"""


def build_parser():
    parser = argparse.ArgumentParser(
        description="Agent Team Dashboard — live status of your Clawdbot agents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Environment variables:\n"
               "  CONFIG_PATH   Gateway config file (default: ~/.clawdbot/clawdbot.json)\n"
               "  AGENTS_DIR    Agents root with <id>/sessions/*.jsonl (default: ~/.clawdbot/agents)\n"
               "  API_BASE      Base URL the browser polls (default: same origin)\n"
    )
    parser.add_argument('--port', '-p', type=int, default=3000, help='Port (default: 3000)')
    parser.add_argument('--host', '-H', type=str, default='0.0.0.0', help='Host (default: 0.0.0.0)')
    parser.add_argument('--config', '-c', type=str, help='Gateway config file')
    parser.add_argument('--agents-dir', '-a', type=str, help='Agents root directory')
    parser.add_argument('--api-base', type=str, default=None, help='Base URL for the status API')
    parser.add_argument('--debug', action='store_true', help='Verbose logging')
    parser.add_argument('--version', '-v', action='version', version=f'team-dashboard {__version__}')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    detect_config(args)
    if args.debug:
        app.logger.setLevel('DEBUG')

    print(BANNER.format(version=__version__))
    print(f"  Config:     {CONFIG_PATH}")
    print(f"  Agents:     {AGENTS_DIR}")
    print(f"  API base:   {API_BASE or '(same origin)'}")
    print()

    local_ip = get_local_ip()
    print(f"  → http://localhost:{args.port}")
    if local_ip != '127.0.0.1':
        print(f"  → http://{local_ip}:{args.port}")
    print()

    app.run(host=args.host, port=args.port, debug=False, threaded=True)


if __name__ == '__main__':
    main()
