from __future__ import annotations

import html
from typing import Optional

from labrats.core.config.models import CompanionConfig
from labrats.dashboard.aggregator import DashboardView


_STYLE = """
    body{font-family:system-ui,Segoe UI,Arial;margin:0;background:#f9fafb;color:#111827}
    main{max-width:960px;margin:0 auto;padding:24px}
    input,button{font-size:16px;padding:10px}
    input{width:100%;margin:6px 0;box-sizing:border-box}
    .card{background:#fff;border-radius:8px;padding:16px;box-shadow:0 1px 3px #0002}
    .stats{display:grid;grid-template-columns:repeat(4,1fr);gap:12px;margin:16px 0}
    table{width:100%;border-collapse:collapse}
    td,th{padding:10px 12px;text-align:left;border-bottom:1px solid #e5e7eb}
    .lab-link{color:#4f46e5;text-decoration:underline dotted;cursor:pointer}
    .muted{color:#6b7280;text-align:center}
    .error{color:#ef4444;text-align:center}
    .hidden{display:none}
    #details-modal{position:fixed;inset:0;z-index:40}
    #modal-backdrop{position:absolute;inset:0;background:#0008}
    #modal-content{position:relative;margin:5vh auto;max-width:760px;max-height:80vh;overflow:auto;background:#fff;border-radius:8px;padding:16px}
    #gravity-lab-intro{position:fixed;inset:0;z-index:60;background:#111827;color:#fff;display:flex;align-items:center;justify-content:center;cursor:pointer}
    #gravity-lab-intro.hidden{display:none}
    #rat-mascot-container{position:fixed;bottom:16px;right:16px;z-index:50;cursor:pointer}
    #rat-mascot-container img{width:96px;height:96px;object-fit:contain}
    .animate-bounce{animation:bounce 1s infinite}
    @keyframes bounce{0%,100%{transform:translateY(-25%)}50%{transform:none}}
"""


def _page(title: str, body: str, script: str) -> str:
    return f"""<!doctype html>
<html>
<head>
  <meta charset="utf-8"/>
  <meta name="viewport" content="width=device-width, initial-scale=1"/>
  <title>{html.escape(title)}</title>
  <style>{_STYLE}</style>
</head>
<body>
{body}
<script>
{script}
</script>
</body>
</html>"""


_LOGIN_SCRIPT = """
async function submitAuth(url, payload){
  const r = await fetch(url, {method:'POST', headers:{'Content-Type':'application/json'}, body: JSON.stringify(payload)});
  let out = {};
  try { out = await r.json(); } catch (e) { out = {ok:false, alert:'Request failed.'}; }
  if (out.alert) { alert(out.alert); }
  if (out.ok && out.redirect) { window.location.href = out.redirect; }
}
document.getElementById('login-form').addEventListener('submit', (e) => {
  e.preventDefault();
  const f = e.target;
  submitAuth('/v1/auth/login', {email: f['login-email'].value, password: f['login-password'].value});
});
document.getElementById('signup-form').addEventListener('submit', (e) => {
  e.preventDefault();
  const f = e.target;
  const confirm = f['signup-confirm-password'] ? f['signup-confirm-password'].value : null;
  if (confirm && f['signup-password'].value !== confirm) { alert('Passwords do not match!'); return; }
  submitAuth('/v1/auth/signup', {email: f['signup-email'].value, password: f['signup-password'].value, confirm_password: confirm});
});
"""


def render_login_page() -> str:
    body = """<main>
  <h2>LabRats</h2>
  <div class="stats" style="grid-template-columns:1fr 1fr">
    <form id="login-form" class="card">
      <h3>Log in</h3>
      <input id="login-email" name="login-email" type="email" placeholder="Email" required/>
      <input id="login-password" name="login-password" type="password" placeholder="Password" required/>
      <button type="submit">Log in</button>
    </form>
    <form id="signup-form" class="card">
      <h3>Sign up</h3>
      <input id="signup-email" name="signup-email" type="email" placeholder="Email" required/>
      <input id="signup-password" name="signup-password" type="password" placeholder="Password" required/>
      <input id="signup-confirm-password" name="signup-confirm-password" type="password" placeholder="Confirm password"/>
      <button type="submit">Create account</button>
    </form>
  </div>
</main>"""
    return _page("LabRats - Login", body, _LOGIN_SCRIPT)


def _table_body(view: DashboardView) -> str:
    message = view.table_message
    if message is not None:
        css = "error" if view.error_message else "muted"
        return f'<tr><td colspan="5" class="{css}">{html.escape(message)}</td></tr>'
    rows = []
    for row in view.rows:
        name = html.escape(row.name)
        rows.append(
            "<tr>"
            f'<td><span class="lab-link" data-lab="{name}">{name}</span></td>'
            f"<td>{html.escape(row.time)}</td>"
            f"<td>{row.attempts}</td>"
            f"<td>{html.escape(row.status)}</td>"
            f"<td>{html.escape(row.date)}</td>"
            "</tr>"
        )
    return "".join(rows)


_DASHBOARD_SCRIPT = """
const $ = (id) => document.getElementById(id);
async function post(url, payload){
  const r = await fetch(url, {method:'POST', headers:{'Content-Type':'application/json'}, body: JSON.stringify(payload || {})});
  return r.json();
}
function cell(text, cls){ const td = document.createElement('td'); td.textContent = text; if (cls) td.className = cls; return td; }
function renderDashboard(v){
  $('total-labs').textContent = v.total_labs;
  $('avg-time').textContent = v.average_label;
  $('fastest-time').textContent = v.fastest;
  $('latest-lab').textContent = v.latest_lab;
  const body = $('labs-table-body');
  body.innerHTML = '';
  if (v.table_message) {
    const tr = document.createElement('tr');
    const td = cell(v.table_message, v.error_message ? 'error' : 'muted');
    td.colSpan = 5; tr.appendChild(td); body.appendChild(tr);
    return;
  }
  for (const row of v.rows) {
    const tr = document.createElement('tr');
    const link = document.createElement('span');
    link.className = 'lab-link'; link.dataset.lab = row.name; link.textContent = row.name;
    const first = document.createElement('td'); first.appendChild(link); tr.appendChild(first);
    tr.appendChild(cell(row.time)); tr.appendChild(cell(String(row.attempts)));
    tr.appendChild(cell(row.status)); tr.appendChild(cell(row.date));
    body.appendChild(tr);
  }
}
function renderModal(m){
  $('gravity-lab-intro').classList.toggle('hidden', m.state !== 'INTRO');
  $('details-modal').classList.toggle('hidden', m.state !== 'VISIBLE');
  if (m.state !== 'VISIBLE') return;
  $('modal-title').textContent = m.title;
  $('modal-lab-name').textContent = m.subtitle;
  const body = $('modal-table-body');
  body.innerHTML = '';
  $('modal-table').classList.toggle('hidden', !m.has_details);
  $('no-details-msg').classList.toggle('hidden', m.has_details);
  for (const e of m.rows) {
    const tr = document.createElement('tr');
    tr.appendChild(cell(String(e.index)));
    tr.appendChild(cell(e.distance === '-' ? '-' : e.distance + 'm'));
    tr.appendChild(cell(e.gravity));
    tr.appendChild(cell(e.duration === '-' ? '-' : e.duration + 's'));
    tr.appendChild(cell(e.recorded_at));
    body.appendChild(tr);
  }
}
$('labs-table-body').addEventListener('click', async (e) => {
  const lab = e.target.closest('.lab-link');
  if (lab) renderModal(await post('/v1/labs/select', {name: lab.dataset.lab}));
});
$('gravity-lab-intro').addEventListener('click', async () => renderModal(await post('/v1/modal/intro/dismiss')));
$('close-modal-btn').addEventListener('click', async () => renderModal(await post('/v1/modal/close', {reason:'close_button'})));
$('modal-backdrop').addEventListener('click', async () => renderModal(await post('/v1/modal/close', {reason:'backdrop'})));
document.addEventListener('keydown', async (e) => {
  if (e.key === 'Escape' && !$('details-modal').classList.contains('hidden')) renderModal(await post('/v1/modal/close', {reason:'escape'}));
});
$('logout-btn').addEventListener('click', async () => {
  const out = await post('/v1/auth/logout');
  window.location.href = out.redirect || '/';
});
const stream = new EventSource('/v1/dashboard/stream');
stream.addEventListener('dashboard', (e) => renderDashboard(JSON.parse(e.data)));

let currentAudio = null;
const mascot = $('rat-mascot-container');
if (mascot) {
  const img = mascot.querySelector('img');
  mascot.addEventListener('click', async () => {
    const cue = await post('/v1/companion/click');
    if (currentAudio && cue.stop_previous) { currentAudio.pause(); currentAudio.currentTime = 0; img.classList.remove('animate-bounce'); }
    const audio = new Audio('/' + cue.clip.split('/').map(encodeURIComponent).join('/'));
    currentAudio = audio;
    img.classList.add('animate-bounce');
    audio.onended = () => { img.classList.remove('animate-bounce'); post('/v1/companion/ended', {play_id: cue.play_id}); };
    audio.play().catch((err) => { img.classList.remove('animate-bounce'); post('/v1/companion/ended', {play_id: cue.play_id, failed: true, reason: String(err)}); });
  });
}
"""


def _companion_markup(companion: Optional[CompanionConfig]) -> str:
    if companion is None or not companion.enabled:
        return ""
    return (
        f'<div id="rat-mascot-container" title="{html.escape(companion.title)}">'
        f'<img src="/{html.escape(companion.mascot_image)}" alt="LabRats Mascot"/></div>'
    )


def render_dashboard_page(email: str, view: DashboardView, *, companion: Optional[CompanionConfig] = None) -> str:
    body = f"""<main>
  <div style="display:flex;justify-content:space-between;align-items:center">
    <h2>LabRats Dashboard</h2>
    <div><span id="user-email">{html.escape(email)}</span> <button id="logout-btn">Log out</button></div>
  </div>
  <div class="stats">
    <div class="card">Total labs<h3 id="total-labs">{view.total_labs}</h3></div>
    <div class="card">Average time<h3 id="avg-time">{html.escape(view.average_label)}</h3></div>
    <div class="card">Fastest time<h3 id="fastest-time">{html.escape(view.fastest)}</h3></div>
    <div class="card">Latest lab<h3 id="latest-lab">{html.escape(view.latest_lab)}</h3></div>
  </div>
  <div class="card">
    <table>
      <thead><tr><th>Lab</th><th>Time</th><th>Attempts</th><th>Status</th><th>Date</th></tr></thead>
      <tbody id="labs-table-body">{_table_body(view)}</tbody>
    </table>
  </div>
</main>
<div id="details-modal" class="hidden">
  <div id="modal-backdrop"></div>
  <div id="modal-content">
    <button id="close-modal-btn" style="float:right">Close</button>
    <h3 id="modal-title"></h3>
    <p id="modal-lab-name" class="muted" style="text-align:left"></p>
    <table id="modal-table">
      <thead><tr><th>#</th><th>Distance</th><th>Gravity</th><th>Duration</th><th>Recorded at</th></tr></thead>
      <tbody id="modal-table-body"></tbody>
    </table>
    <p id="no-details-msg" class="muted hidden">No detailed experiments found for this lab.</p>
  </div>
</div>
<div id="gravity-lab-intro" class="hidden"><h2>Gravity Lab</h2><p>&nbsp;Click anywhere to see your results.</p></div>
{_companion_markup(companion)}"""
    return _page("LabRats - Dashboard", body, _DASHBOARD_SCRIPT)
