"""
Campaign Template Rendering

Placeholder substitution for subjects and bodies, the HTML wrapper used
for outgoing mail, and the open/click tracking rewrites.
"""

import base64
import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import quote

from .models import Member

PLACEHOLDER_PATTERN = re.compile(r"\{\{([^}]+)\}\}")
HREF_PATTERN = re.compile(r"""href=["']([^"']+)["']""", re.IGNORECASE)

TRACKING_PATH = "/api/v1/tracking"
UNTRACKED_PREFIXES = ("mailto:", "tel:", "#")

HTML_WRAPPER_STYLE = "font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;"


def format_value(value: Any) -> str:
    """String form of a template value; dates read like 'March 5, 2024'"""
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return f"{value:%B} {value.day}, {value.year}"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _lookup(data: Dict[str, Any], path: str) -> Any:
    value: Any = data
    for key in path.strip().split("."):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            raise KeyError(path)
    return value


def render_template(template: str, data: Dict[str, Any]) -> str:
    """
    Replace ``{{ dotted.path }}`` placeholders from ``data``.

    Placeholders whose path does not resolve are left as written.
    """

    def replace(match: "re.Match[str]") -> str:
        try:
            return format_value(_lookup(data, match.group(1)))
        except KeyError:
            return match.group(0)

    return PLACEHOLDER_PATTERN.sub(replace, template)


def build_template_data(
    member: Member,
    organization_name: Optional[str],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Variables available to campaign templates for one member"""
    return {
        "member": {
            "name": member.full_name,
            "first_name": member.first_name,
            "last_name": member.last_name,
            "email": member.email or "",
            "job_title": member.job_title or "",
            "department": member.department_name or "",
            "hire_date": member.hire_date,
            "status": member.status.value if isinstance(member.status, Enum) else member.status,
        },
        "organization": {
            "name": organization_name or "",
        },
        "current_date": now or datetime.now(timezone.utc),
    }


def build_html_body(body: str) -> str:
    """Wrap a rendered plain-text body; non-blank lines become paragraphs"""
    lines = "".join(
        f"<p>{line}</p>" if line.strip() else "<br>" for line in body.split("\n")
    )
    return f'<div style="{HTML_WRAPPER_STYLE}">{lines}</div>'


def tracking_url(base_url: str, kind: str, email_id: str) -> str:
    return f"{base_url.rstrip('/')}{TRACKING_PATH}/{kind}/{email_id}"


def encode_click_target(url: str) -> str:
    return base64.b64encode(url.encode("utf-8")).decode("ascii")


def decode_click_target(encoded: str) -> str:
    """Inverse of encode_click_target; raises ValueError on bad input"""
    try:
        return base64.b64decode(encoded, validate=True).decode("utf-8")
    except (ValueError, UnicodeDecodeError) as e:
        raise ValueError(f"Invalid tracking url: {e}") from e


def add_click_tracking(html: str, email_id: str, base_url: str) -> str:
    """Route every trackable link through the click redirect"""

    def replace(match: "re.Match[str]") -> str:
        url = match.group(1)
        if url.startswith(UNTRACKED_PREFIXES) or f"{TRACKING_PATH}/" in url:
            return match.group(0)
        target = quote(encode_click_target(url), safe="")
        return f'href="{tracking_url(base_url, "click", email_id)}?url={target}"'

    return HREF_PATTERN.sub(replace, html)


def add_tracking_pixel(html: str, email_id: str, base_url: str) -> str:
    """Insert the open pixel before </body>, else before the last </div>"""
    pixel = (
        f'<img src="{tracking_url(base_url, "open", email_id)}" width="1" height="1" '
        f'style="display:none;width:1px;height:1px;" alt="" />'
    )

    if "</body>" in html:
        return html.replace("</body>", f"{pixel}</body>", 1)
    index = html.rfind("</div>")
    if index != -1:
        return html[:index] + pixel + html[index:]
    return html + pixel


def render_email_html(body: str, email_id: str, base_url: str) -> str:
    """HTML part of an outgoing campaign email with tracking applied"""
    html = build_html_body(body)
    html = add_click_tracking(html, email_id, base_url)
    return add_tracking_pixel(html, email_id, base_url)


__all__ = [
    "render_template",
    "build_template_data",
    "format_value",
    "build_html_body",
    "add_click_tracking",
    "add_tracking_pixel",
    "render_email_html",
    "encode_click_target",
    "decode_click_target",
    "tracking_url",
]
