"""HTML email templates for auto-apply summaries and match digests."""

from datetime import datetime
from html import escape

_STYLE = """
    <style>
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            background-color: #f5f5f5;
            margin: 0;
            padding: 20px;
            color: #333;
        }
        .container {
            max-width: 640px;
            margin: 0 auto;
            background: #fff;
            border-radius: 8px;
            overflow: hidden;
            box-shadow: 0 2px 8px rgba(0,0,0,0.1);
        }
        .header {
            background: #10b981;
            color: white;
            padding: 24px;
            text-align: center;
        }
        .header h1 { margin: 0; font-size: 22px; font-weight: 600; }
        .header p { margin: 8px 0 0; opacity: 0.9; font-size: 14px; }
        .content { padding: 24px; }
        .section-title { font-size: 16px; font-weight: 600; margin: 20px 0 12px; }
        .job-card {
            border: 1px solid #e0e0e0;
            border-left: 4px solid #10b981;
            border-radius: 8px;
            padding: 14px 16px;
            margin-bottom: 12px;
        }
        .job-card.good { border-left-color: #3b82f6; }
        .job-card.manual { border-left-color: #f59e0b; }
        .job-title { font-size: 15px; font-weight: 600; margin: 0; }
        .job-company { font-size: 14px; color: #555; margin: 4px 0; }
        .job-meta { font-size: 13px; color: #777; margin: 4px 0; }
        .score-badge {
            float: right;
            background: #10b981;
            color: white;
            padding: 3px 10px;
            border-radius: 12px;
            font-size: 12px;
            font-weight: 600;
        }
        .score-badge.good { background: #3b82f6; }
        .cta { text-align: center; margin-top: 24px; }
        .cta a {
            display: inline-block;
            background: #10b981;
            color: white;
            padding: 12px 24px;
            border-radius: 8px;
            text-decoration: none;
            font-weight: 600;
        }
        .note { border-radius: 8px; padding: 12px; margin-top: 20px; text-align: center; font-size: 14px; }
        .footer {
            background: #fafafa;
            padding: 16px 24px;
            text-align: center;
            font-size: 12px;
            color: #999;
            border-top: 1px solid #eee;
        }
    </style>"""

STATUS_LABELS = {
    "auto_applied": "Auto-applied",
    "manual_required": "Apply manually",
}


def _page(title: str, subtitle: str, body: str, footer: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">{_STYLE}
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>{escape(title)}</h1>
            <p>{escape(subtitle)}</p>
        </div>
        <div class="content">
            {body}
        </div>
        <div class="footer">
            {footer}
        </div>
    </div>
</body>
</html>"""


def render_auto_apply_summary(applications: list[dict], site_url: str = "") -> tuple[str, str]:
    """Render the summary sent after an auto-apply run.

    Returns (subject, html_body).
    """
    date_str = datetime.now().strftime("%B %d, %Y")
    auto = [a for a in applications if a.get("status") == "auto_applied"]
    manual = [a for a in applications if a.get("status") == "manual_required"]
    subject = f"AutoApply Daily Summary - {date_str}"

    sections = []
    if auto:
        sections.append(f'<div class="section-title">Auto-applied ({len(auto)})</div>')
        sections.extend(_render_application(a) for a in auto)
    if manual:
        sections.append(f'<div class="section-title">Needs your action ({len(manual)})</div>')
        sections.extend(_render_application(a) for a in manual)
    if site_url:
        sections.append(f'<div class="cta"><a href="{escape(site_url)}/applications">View Applications</a></div>')

    html = _page(
        "Your Auto-Apply Summary",
        f"{len(auto)} auto-applied, {len(manual)} need manual action - {date_str}",
        "\n".join(sections),
        "Sent by AutoApply | You enabled auto-apply email notifications",
    )
    return subject, html


def _render_application(app: dict) -> str:
    status = app.get("status", "")
    css = "job-card manual" if status == "manual_required" else "job-card"
    score = app.get("match_score")
    badge = f'<span class="score-badge">{score}% match</span>' if score is not None else ""
    link = ""
    if app.get("job_url"):
        link = f'<div class="job-meta"><a href="{escape(app["job_url"])}">Apply on company site &rarr;</a></div>'
    return f"""
            <div class="{css}">
                {badge}
                <p class="job-title">{escape(app.get("job_title", ""))}</p>
                <div class="job-company">{escape(app.get("company_name", ""))}</div>
                <div class="job-meta">{STATUS_LABELS.get(status, escape(status))}</div>
                {link}
            </div>"""


def render_match_digest(
    matches: list[dict],
    auto_apply_enabled: bool = False,
    auto_apply_threshold: int = 75,
    site_url: str = "",
    high_score: int = 75,
) -> tuple[str, str]:
    """Render the daily digest of new matches. Each match dict carries
    ``job_title``, ``company_name``, ``match_score`` and optional
    ``location``, ``work_type`` and ``job_url``.

    Returns (subject, html_body).
    """
    date_str = datetime.now().strftime("%A, %B %d, %Y")
    high = [m for m in matches if m["match_score"] >= high_score]
    good = [m for m in matches if m["match_score"] < high_score]
    subject = f"{len(matches)} New Job Matches Found - {len(high)} are {high_score}%+ matches!"

    sections = []
    if high:
        sections.append(f'<div class="section-title">Top Matches ({len(high)})</div>')
        sections.extend(_render_match(m, "") for m in high[:5])
    if good:
        sections.append(f'<div class="section-title">Good Matches ({len(good)})</div>')
        sections.extend(_render_match(m, "good") for m in good[:5])

    if auto_apply_enabled:
        sections.append(
            f'<div class="note" style="background:#f0fdf4;color:#166534;">'
            f'Auto-Apply is enabled! Jobs matching {auto_apply_threshold}%+ will be applied automatically.</div>'
        )
    else:
        sections.append(
            '<div class="note" style="background:#fef3c7;color:#92400e;">'
            'Enable Auto-Apply to automatically apply to high-matching jobs!</div>'
        )
    if site_url:
        sections.append(f'<div class="cta"><a href="{escape(site_url)}/jobs">View All Matches</a></div>')

    html = _page(
        "Your Daily Job Matches",
        date_str,
        "\n".join(sections),
        "Sent by AutoApply | You're receiving this because you enabled daily job matching",
    )
    return subject, html


def _render_match(match: dict, variant: str) -> str:
    meta_parts = []
    if match.get("location"):
        meta_parts.append(escape(match["location"]))
    if match.get("work_type"):
        meta_parts.append(escape(match["work_type"]))
    meta_line = " &middot; ".join(meta_parts)

    link = ""
    if match.get("job_url"):
        link = f'<div class="job-meta"><a href="{escape(match["job_url"])}">View Job &rarr;</a></div>'

    return f"""
            <div class="job-card {variant}">
                <span class="score-badge {variant}">{match["match_score"]}%</span>
                <p class="job-title">{escape(match.get("job_title", ""))}</p>
                <div class="job-company">{escape(match.get("company_name", ""))}</div>
                <div class="job-meta">{meta_line}</div>
                {link}
            </div>"""


def render_test_email() -> tuple[str, str]:
    """Render a test email to verify email configuration."""
    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    subject = f"AutoApply - Test Email ({now})"
    html = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: sans-serif; padding: 20px;">
    <h2>AutoApply - Test Email</h2>
    <p>This is a test email from AutoApply.</p>
    <p>If you received this, your email configuration is working correctly.</p>
    <p style="color: #999; font-size: 12px;">Sent at: {now}</p>
</body>
</html>"""
    return subject, html
