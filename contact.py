"""
Contact form: validation, captcha verification and the Mailjet relay.

Messages are forwarded once and never stored.
"""
import json
import re
from typing import Any, Optional, Tuple

import httpx
from markupsafe import escape
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from config import Settings
from logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_MESSAGE_LENGTH = 500


class CaptchaError(Exception):
    pass


class MailerError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ContactForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(min_length=1)
    email: str
    message: str = Field(min_length=1, max_length=MAX_MESSAGE_LENGTH)
    captcha_token: str = Field(alias="captchaToken")

    @field_validator("email")
    @classmethod
    def valid_email(cls, v: str) -> str:
        if not EMAIL_PATTERN.match(v):
            raise ValueError("invalid email address")
        return v

    @field_validator("captcha_token", mode="before")
    @classmethod
    def present_token(cls, v: Any) -> str:
        # any truthy token is passed on; the captcha service decides
        if isinstance(v, str):
            v = v.strip()
        if not v:
            raise ValueError("captcha token is required")
        return v if isinstance(v, str) else json.dumps(v)


class Envelope(BaseModel):
    success: bool
    message: str


class CaptchaVerifier:
    def __init__(self, secret: str, verify_url: str, timeout: float = 10.0,
                 transport: Optional[httpx.BaseTransport] = None):
        self.secret = secret
        self.verify_url = verify_url
        self._http = httpx.Client(timeout=timeout, transport=transport)

    def verify(self, token: str) -> bool:
        try:
            resp = self._http.post(self.verify_url, data={"secret": self.secret, "response": token})
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise CaptchaError(str(e)) from e
        return bool(resp.json().get("success"))


class Mailer:
    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings
        self._http = httpx.Client(
            auth=(settings.mj_apikey_public or "", settings.mj_apikey_private or ""),
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    def build_message(self, form: ContactForm) -> dict:
        s = self.settings
        html_part = (
            '<div style="font-family: Arial, sans-serif; border: 1px solid #e8e8e8; padding: 20px; '
            'max-width: 600px; margin: 0 auto;">'
            '<h2 style="color: #333;">New Contact Message</h2>'
            f'<p><strong>Name:</strong> {escape(form.name)}</p>'
            f'<p><strong>Email:</strong> {escape(form.email)}</p>'
            '<hr style="border: none; border-top: 1px solid #e8e8e8;">'
            f'<p>{escape(form.message)}</p>'
            '</div>'
        )
        return {
            "From": {"Email": s.contact_sender_email, "Name": s.contact_sender_name},
            "To": [{"Email": s.contact_recipient_email, "Name": s.contact_recipient_name}],
            "Subject": f"New contact from {form.name}",
            "TextPart": f"Name: {form.name}\nEmail: {form.email}\n\nMessage:\n{form.message}",
            "HTMLPart": html_part,
        }

    def send(self, form: ContactForm) -> None:
        try:
            resp = self._http.post(self.settings.mailjet_url, json={"Messages": [self.build_message(form)]})
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Mailjet send failed", extra={"status": e.response.status_code, "reason": e.response.text[:200]})
            raise MailerError("Mailjet send failed", e.response.status_code) from e
        except httpx.HTTPError as e:
            logger.error("Mailjet unreachable: %s", e)
            raise MailerError("Mailjet unreachable") from e


def relay_contact(
    payload: Optional[dict],
    settings: Settings,
    verifier: Optional[CaptchaVerifier],
    mailer: Optional[Mailer],
) -> Tuple[int, Envelope]:
    """Validate, verify and forward one contact submission; returns (status, envelope)"""
    if not settings.email_configured or verifier is None or mailer is None:
        logger.error("Missing env vars", extra={
            "has_public": bool(settings.mj_apikey_public),
            "has_private": bool(settings.mj_apikey_private),
            "has_captcha": bool(settings.captcha_secret),
        })
        return 500, Envelope(success=False, message="Email service not configured. Please try again later.")

    try:
        form = ContactForm.model_validate(payload or {})
    except ValidationError:
        return 400, Envelope(success=False, message="Invalid form payload.")

    try:
        if not verifier.verify(form.captcha_token):
            return 422, Envelope(success=False, message="Unprocessable request, invalid captcha code.")
    except CaptchaError as e:
        logger.error("hCaptcha verification failed: %s", e)
        return 422, Envelope(success=False, message="Captcha verification failed.")

    try:
        mailer.send(form)
    except MailerError as e:
        status = e.status_code if e.status_code and 400 <= e.status_code < 600 else 502
        return status, Envelope(success=False, message="Email provider error. Please try again later.")

    logger.info("Contact message relayed", extra={"sender_domain": form.email.rsplit("@", 1)[-1]})
    return 200, Envelope(success=True, message="Thanks for contacting me!")
