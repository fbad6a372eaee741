# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Project: graph-sso

"""
HTML pages: home, profile and the Graph API dashboard.
"""

import json
from datetime import datetime, timedelta, timezone
from html import escape
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from graph_sso.dependencies import get_services, require_auth
from graph_sso.identity import display_name_for

router = APIRouter(tags=["Pages"])

_STYLE = """
body { font-family: Arial, sans-serif; max-width: 800px; margin: 0 auto; padding: 20px; }
.container { background-color: #f5f5f5; border-radius: 5px; padding: 20px; }
.card, .profile-data { background-color: white; border: 1px solid #ddd; border-radius: 4px;
  padding: 15px; margin-top: 20px; overflow: auto; }
.btn { background-color: #0078d4; color: white; padding: 10px 20px; text-decoration: none;
  border-radius: 4px; font-weight: bold; display: inline-block; margin-top: 20px; border: none; cursor: pointer; }
.btn-danger { background-color: #d40000; }
.profile-photo { max-width: 150px; border-radius: 50%; border: 3px solid #0078d4; }
#calendar-events { max-height: 300px; overflow-y: auto; }
h1, h2 { color: #0078d4; }
"""


def _page(title: str, body: str) -> HTMLResponse:
    return HTMLResponse(
        f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>{escape(title)}</title>
    <style>{_STYLE}</style>
  </head>
  <body>
    <div class="container">
{body}
    </div>
  </body>
</html>
"""
    )


@router.get("/", response_class=HTMLResponse)
async def home(request: Request) -> HTMLResponse:
    signed_in = get_services(request).session_binder.is_authenticated(request.session)
    profile_link = '<p><a href="/profile">View your profile</a></p>' if signed_in else ""
    return _page(
        "Microsoft SSO Example",
        f"""      <h1>Microsoft SSO Authentication</h1>
      <p>Click below to authenticate with your Microsoft account</p>
      <a href="/auth/login" class="btn">Login with Microsoft</a>
      {profile_link}""",
    )


@router.get("/profile", response_class=HTMLResponse)
async def profile(user: Annotated[dict[str, Any], Depends(require_auth)]) -> HTMLResponse:
    user_json = json.dumps(user, indent=2, ensure_ascii=False)
    return _page(
        "Profile - Microsoft SSO Example",
        f"""      <h1>Profile</h1>
      <p>Welcome {escape(display_name_for(user))}</p>
      <p>Email: {escape(str(user.get("email") or "Not provided"))}</p>
      <div class="profile-data">
        <h3>User Information:</h3>
        <pre>{escape(user_json)}</pre>
      </div>
      <a href="/dashboard" class="btn">Dashboard</a>
      <a href="/auth/logout" class="btn btn-danger">Logout</a>
      <p><a href="/">Back to home</a></p>""",
    )


_DASHBOARD_SCRIPT = """
function field(label, value) {
  const p = document.createElement('p');
  const strong = document.createElement('strong');
  strong.textContent = label + ': ';
  p.appendChild(strong);
  p.appendChild(document.createTextNode(value || 'N/A'));
  return p;
}

async function fetchProfile() {
  const target = document.getElementById('profile-data');
  try {
    const response = await fetch('/api/me');
    if (!response.ok) throw new Error('Failed to fetch profile');
    const data = await response.json();
    target.replaceChildren(
      field('Display Name', data.displayName),
      field('Email', data.mail || data.userPrincipalName),
      field('Job Title', data.jobTitle),
      field('Department', data.department),
      field('Office Location', data.officeLocation),
    );
    fetchPhoto();
  } catch (error) {
    target.textContent = 'Error fetching profile: ' + error.message;
  }
}

async function fetchPhoto() {
  const target = document.getElementById('photo-container');
  try {
    const response = await fetch('/api/me/photo');
    if (!response.ok) throw new Error('Photo not available');
    const data = await response.json();
    const img = document.createElement('img');
    img.src = data.photo;
    img.alt = 'Profile';
    img.className = 'profile-photo';
    target.replaceChildren(img);
  } catch (error) {
    target.textContent = 'No profile photo available';
  }
}

async function fetchCalendarEvents() {
  const start = document.getElementById('startDateTime').value;
  const end = document.getElementById('endDateTime').value;
  const target = document.getElementById('calendar-events');
  if (!start || !end) {
    alert('Please select start and end dates');
    return;
  }
  target.textContent = 'Loading events...';
  try {
    const query = new URLSearchParams({startDateTime: start, endDateTime: end});
    const response = await fetch('/api/me/calendar?' + query.toString());
    if (!response.ok) throw new Error('Failed to fetch calendar events');
    const data = await response.json();
    if (!data.events || data.events.length === 0) {
      target.textContent = 'No events found in the selected date range.';
      return;
    }
    const list = document.createElement('ul');
    for (const event of data.events) {
      const item = document.createElement('li');
      const startAt = new Date(event.start.dateTime).toLocaleString();
      const endAt = new Date(event.end.dateTime).toLocaleString();
      const location = (event.location && event.location.displayName) || 'No location';
      item.appendChild(field('Subject', event.subject));
      item.appendChild(field('Time', startAt + ' - ' + endAt));
      item.appendChild(field('Location', location));
      if (event.bodyPreview) item.appendChild(field('Details', event.bodyPreview));
      list.appendChild(item);
    }
    target.replaceChildren(list);
  } catch (error) {
    target.textContent = 'Error fetching calendar events: ' + error.message;
  }
}

document.addEventListener('DOMContentLoaded', () => {
  fetchProfile();
  fetchCalendarEvents();
});
"""


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(user: Annotated[dict[str, Any], Depends(require_auth)]) -> HTMLResponse:
    now = datetime.now(timezone.utc)
    start = now.strftime("%Y-%m-%dT%H:%M")
    end = (now + timedelta(days=7)).strftime("%Y-%m-%dT%H:%M")
    return _page(
        "Dashboard - Microsoft SSO Example",
        f"""      <h1>Dashboard</h1>
      <p>Signed in as {escape(display_name_for(user))}</p>
      <a href="/profile" class="btn">Profile</a>
      <a href="/auth/logout" class="btn btn-danger">Logout</a>
      <div class="card">
        <h2>Microsoft Graph API Integration</h2>
        <h3>User Profile</h3>
        <div id="profile-data">Loading profile...</div>
        <div id="photo-container" style="text-align: center; margin-top: 20px;"></div>
      </div>
      <div class="card">
        <h3>Calendar Events</h3>
        <label>Start date: <input type="datetime-local" id="startDateTime" value="{start}"></label>
        <label>End date: <input type="datetime-local" id="endDateTime" value="{end}"></label>
        <button class="btn" onclick="fetchCalendarEvents()">Fetch Events</button>
        <div id="calendar-events">Loading calendar events...</div>
      </div>
      <p><a href="/">Back to home</a></p>
      <script>{_DASHBOARD_SCRIPT}</script>""",
    )
