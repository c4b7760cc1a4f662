"""
Cloudflare Zero Trust pages: WARP downloads, enrollment steps and the
support diagnostics captured from the visiting request.
"""
import re
from typing import List, Mapping, Optional

from markupsafe import Markup, escape

TEAM_NAME = "ebox86"
MOBILE_ENROLL_URL = f"cf1app://oneapp.cloudflare.com/team?name={TEAM_NAME}"
WARP_DOCS_URL = (
    "https://developers.cloudflare.com/cloudflare-one/team-and-resources/devices/warp/deployment/manual-deployment/"
)

DOWNLOAD_LINKS = [
    {"label": "Windows (GA)", "platform": "Windows",
     "url": "https://downloads.cloudflareclient.com/v1/download/windows/ga", "description": "Download installer"},
    {"label": "macOS (GA)", "platform": "macOS",
     "url": "https://downloads.cloudflareclient.com/v1/download/macos/ga", "description": "Download installer"},
    {"label": "Linux package", "platform": "Linux",
     "url": "https://pkg.cloudflareclient.com/", "description": "Add the Linux package"},
    {"label": "iOS App Store", "platform": "iOS",
     "url": "https://apps.apple.com/us/app/cloudflare-one-agent/id6443476492"},
    {"label": "Android Play Store", "platform": "Android",
     "url": "https://play.google.com/store/apps/details?id=com.cloudflare.cloudflareoneagent"},
]

DOWNLOAD_SECTIONS = [
    {"id": "desktop", "items": DOWNLOAD_LINKS[:3]},
    {"id": "mobile", "items": DOWNLOAD_LINKS[3:]},
]

INSTRUCTION_SECTIONS = [
    {
        "id": "desktop",
        "title": "Desktop enrollment",
        "steps": [
            "Launch the Cloudflare WARP client.",
            "Select the Cloudflare logo in the menu bar or system tray.",
            "Open the gear icon ⚙️ and visit Preferences > Account.",
            "Choose “Login with Cloudflare Zero Trust”.",
            f"Enter the team name {TEAM_NAME} and continue.",
            "Complete the authentication steps required by Google.",
            "When the Success page appears, confirm that Cloudflare WARP opens.",
            f"The device is now managed by the {TEAM_NAME} Zero Trust policies.",
        ],
    },
    {
        "id": "mobile",
        "title": "Mobile enrollment",
        "steps": [
            "Install Cloudflare One from the App Store or Play Store.",
            "Open the app, tap the Cloudflare logo, and choose Join team.",
            f"Enter {TEAM_NAME} or tap the link below to skip typing the team name.",
            "Follow the authentication prompts required by Google.",
            "Accept the registration dialog to open Cloudflare WARP.",
        ],
    },
]

HIGHLIGHT_TERMS = ["Preferences", "Account", TEAM_NAME, "⚙️", "Join team"]
HIGHLIGHT_PATTERN = re.compile("(" + "|".join(re.escape(t) for t in HIGHLIGHT_TERMS) + ")", re.IGNORECASE)


def highlight_step(step: str) -> Markup:
    """Wrap UI labels and the team name in a highlight span"""
    parts: List[Markup] = []
    last = 0
    for match in HIGHLIGHT_PATTERN.finditer(step):
        parts.append(escape(step[last:match.start()]))
        parts.append(Markup('<span class="zt-highlight font-semibold">%s</span>') % match.group(0))
        last = match.end()
    parts.append(escape(step[last:]))
    return Markup("").join(parts)


def support_diagnostics(headers: Mapping[str, str], client_host: Optional[str]) -> dict:
    forwarded = headers.get("x-forwarded-for")
    forwarded_ip = (forwarded.split(",")[0].strip() if forwarded else None) or headers.get("x-real-ip") or None
    return {
        "ip": forwarded_ip or client_host or "Unknown",
        "forwarded_ip": forwarded_ip,
        "user_agent": headers.get("user-agent") or "Unknown",
        "accept_language": headers.get("accept-language"),
        "referer": headers.get("referer"),
        "host": headers.get("host"),
    }
