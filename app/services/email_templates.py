"""HTML bodies and subjects for demo class emails."""
from __future__ import annotations

from datetime import datetime
from html import escape

from app.config import settings

_STYLES = """
<style>
  body { font-family: Arial, sans-serif; color: #333; }
  .container { max-width: 600px; margin: 0 auto; padding: 20px; }
  .schedule-table { width: 100%; border-collapse: collapse; margin: 16px 0; }
  .schedule-table th, .schedule-table td { border: 1px solid #ddd; padding: 8px; text-align: left; }
  .button { display: inline-block; padding: 10px 18px; background: #2563eb; color: #fff; text-decoration: none; border-radius: 4px; }
  .footer { font-size: 12px; color: #888; margin-top: 24px; }
</style>
"""


def _schedule_table(class_type: str, day: str, start: str, end: str, duration: str) -> str:
    return f"""
      <table class="schedule-table">
        <thead><tr><th>Class</th><th>Date</th><th>Time</th><th>Duration</th></tr></thead>
        <tbody><tr><td>{class_type}</td><td>{day}</td><td>{start} - {end}</td><td>{duration}</td></tr></tbody>
      </table>"""


def _documents_list(documents: list[dict]) -> str:
    if not documents:
        return ""
    items = "".join(
        f'<li><a href="{escape(d["url"])}">{escape(d["name"])}</a></li>' for d in documents
    )
    return f"<p>Class materials:</p><ul>{items}</ul>"


def _wrap(heading: str, body: str) -> str:
    company = escape(settings.email_from_name)
    return f"""<!DOCTYPE html>
<html>
<head>{_STYLES}</head>
<body>
  <div class="container">
    <h2>{company}</h2>
    <h3>{escape(heading)}</h3>
    {body}
    <div class="footer"><p>&copy; {datetime.utcnow().year} {company}. All rights reserved.</p></div>
  </div>
</body>
</html>"""


def _schedule_url(ctx: dict) -> str:
    audience = "teacher" if ctx.get("is_teacher") else "student"
    return escape(f"{ctx.get('base_url', '')}/{audience}/schedule")


def render_scheduled(ctx: dict) -> tuple[str, str]:
    class_type = escape(ctx["class_type"])
    if ctx.get("is_teacher"):
        subject, heading = f"Demo Class Scheduled: {ctx['class_type']}", "Demo Class Scheduled"
    else:
        subject, heading = f"You're Invited to a Demo Class: {ctx['class_type']}", "You're Invited to a Demo Class"
    body = f"""
    <p>Dear {escape(ctx['name'])},</p>
    <p>A demo class <strong>{class_type}</strong> has been scheduled. Below are the details:</p>
    {_schedule_table(class_type, escape(ctx['date']), escape(ctx['start_time']), escape(ctx['end_time']), escape(ctx['call_duration']))}
    <p>Times are in {escape(ctx['timezone'])}. Please join 5-10 minutes early.</p>
    {_documents_list(ctx.get('documents') or [])}
    <p><a href="{escape(ctx['link'])}" class="button">Join Class</a></p>
    <p><a href="{_schedule_url(ctx)}" class="button">View Schedule</a></p>"""
    return subject, _wrap(heading, body)


def render_rescheduled(ctx: dict) -> tuple[str, str]:
    class_type = escape(ctx["class_type"])
    body = f"""
    <p>Dear {escape(ctx['name'])},</p>
    <p>The demo class <strong>{class_type}</strong> has been rescheduled. Below are the updated details:</p>
    {_schedule_table(class_type, escape(ctx['date']), escape(ctx['start_time']), escape(ctx['end_time']), escape(ctx['call_duration']))}
    <p>Previous schedule (cancelled):</p>
    {_schedule_table(class_type, escape(ctx['previous_date']), escape(ctx['previous_start_time']), escape(ctx['previous_end_time']), escape(ctx['call_duration']))}
    <p><a href="{escape(ctx['link'])}" class="button">Join Class</a></p>
    <p><a href="{_schedule_url(ctx)}" class="button">View Schedule</a></p>"""
    return f"Demo Class Rescheduled: {ctx['class_type']}", _wrap("Demo Class Rescheduled", body)


def render_cancelled(ctx: dict) -> tuple[str, str]:
    class_type = escape(ctx["class_type"])
    support = escape(settings.support_email)
    body = f"""
    <p>Dear {escape(ctx['name'])},</p>
    <p>The demo class <strong>{class_type}</strong> on {escape(ctx['date'])} at {escape(ctx['start_time'])}
    ({escape(ctx['call_duration'])}) has been cancelled.</p>
    <p>For any questions, contact us at <a href="mailto:{support}">{support}</a>.</p>"""
    return f"Demo Class Cancelled: {ctx['class_type']}", _wrap("Demo Class Cancelled", body)


def render_reminder(ctx: dict) -> tuple[str, str]:
    class_type = escape(ctx["class_type"])
    body = f"""
    <p>Dear {escape(ctx['name'])},</p>
    <p>Your demo class <strong>{class_type}</strong> with {escape(ctx['teacher'])} starts in
    {escape(ctx['time_until'])}, on {escape(ctx['date'])} at {escape(ctx['start_time'])} ({escape(ctx['timezone'])}).</p>
    <p><a href="{escape(ctx['link'])}" class="button">Join Class</a></p>"""
    return f"Reminder: {ctx['class_type']} starts in {ctx['time_until']}", _wrap("Class Reminder", body)


TEMPLATES = {
    "demo_class_scheduled": render_scheduled,
    "demo_class_rescheduled": render_rescheduled,
    "demo_class_cancelled": render_cancelled,
    "demo_class_reminder": render_reminder,
}


def render(template: str, ctx: dict) -> tuple[str, str]:
    """Return (subject, html) for ``template``; KeyError for unknown names."""
    return TEMPLATES[template](ctx)
