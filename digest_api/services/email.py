"""Digest email rendering and SendGrid transport."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from html import escape
from typing import Optional

import httpx

from digest_api.errors import DeliveryError

logger = logging.getLogger(__name__)

RULE = "=" * 60


@dataclass
class DigestEmail:
    """Everything needed to render a digest email."""

    title: str
    key_points: list[str]
    word_count: int
    source: str
    language: str
    report_id: str
    full_text: Optional[str] = None
    video_id: Optional[str] = None
    channel_id: Optional[str] = None
    url: Optional[str] = None


def render_subject(data: DigestEmail) -> str:
    return f"📊 Digest: {data.title}"


def render_plain_text(data: DigestEmail) -> str:
    """Render the plain-text variant of a digest email."""
    lines = [
        f"Cognition Digest - {data.title}",
        "",
        RULE,
        "",
        "📝 KEY POINTS:",
        "",
        *[f"{i}. {point}" for i, point in enumerate(data.key_points, start=1)],
        "",
        RULE,
        "",
        f"📊 Word Count: {data.word_count}",
        f"🌐 Language: {data.language}",
        f"📍 Source: {data.source}",
    ]

    if data.url:
        lines.append(f"🔗 URL: {data.url}")
    elif data.video_id:
        lines.append(f"🎥 Video ID: {data.video_id}")

    if data.full_text:
        lines.extend(["", RULE, "", "📄 FULL SUMMARY:", "", data.full_text])

    lines.extend(
        [
            "",
            RULE,
            "",
            f"Report ID: {data.report_id}",
            "",
            "---",
            "Powered by Cognition Digest",
            "https://cognition-digest.com",
        ]
    )
    return "\n".join(lines)


def render_html(data: DigestEmail) -> str:
    """Render the HTML variant of a digest email. All user content is escaped."""
    key_points_html = "".join(
        f'<li style="margin-bottom: 12px; line-height: 1.6;">'
        f'<strong style="color: #667eea;">{i}.</strong> {escape(point)}</li>'
        for i, point in enumerate(data.key_points, start=1)
    )

    full_text_html = ""
    if data.full_text:
        full_text_html = f"""
          <tr>
            <td style="padding: 0 30px 30px 30px;">
              <h3 style="margin: 0 0 15px 0; color: #333; font-size: 18px;">📄 Full Summary</h3>
              <div style="border: 1px solid #e0e0e0; padding: 20px; border-radius: 8px; line-height: 1.8; color: #555;">
                {escape(data.full_text).replace(chr(10), "<br>")}
              </div>
            </td>
          </tr>"""

    url_html = ""
    if data.url:
        url_html = f"""
                <tr>
                  <td colspan="2" style="color: #666; font-size: 14px; padding-top: 8px;">
                    <strong>🔗 Source URL:</strong><br>
                    <a href="{escape(data.url)}" style="color: #667eea; text-decoration: none;">{escape(data.url)}</a>
                  </td>
                </tr>"""

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape(data.title)}</title>
</head>
<body style="margin: 0; padding: 0; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background-color: #f5f5f5;">
  <table width="100%" cellpadding="0" cellspacing="0" style="background-color: #f5f5f5; padding: 40px 20px;">
    <tr>
      <td align="center">
        <table width="600" cellpadding="0" cellspacing="0" style="background-color: #ffffff; border-radius: 12px; overflow: hidden;">
          <tr>
            <td style="background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); padding: 40px 30px; text-align: center;">
              <h1 style="margin: 0; color: #ffffff; font-size: 28px;">📊 Cognition Digest</h1>
              <p style="margin: 10px 0 0 0; color: #ffffff; font-size: 14px;">Your AI-Powered Content Summary</p>
            </td>
          </tr>
          <tr>
            <td style="padding: 30px 30px 20px 30px;">
              <h2 style="margin: 0; color: #333; font-size: 24px;">{escape(data.title)}</h2>
            </td>
          </tr>
          <tr>
            <td style="padding: 0 30px 30px 30px;">
              <div style="background-color: #f8f9fa; border-left: 4px solid #667eea; padding: 20px; border-radius: 8px;">
                <h3 style="margin: 0 0 15px 0; color: #667eea; font-size: 18px;">🔑 Key Points</h3>
                <ul style="margin: 0; padding-left: 20px; list-style: none;">{key_points_html}</ul>
              </div>
            </td>
          </tr>{full_text_html}
          <tr>
            <td style="padding: 0 30px 30px 30px;">
              <table width="100%" cellpadding="8" cellspacing="0" style="border-top: 1px solid #e0e0e0;">
                <tr>
                  <td style="color: #666; font-size: 14px;"><strong>📊 Word Count:</strong> {data.word_count}</td>
                  <td style="color: #666; font-size: 14px;"><strong>🌐 Language:</strong> {escape(data.language.upper())}</td>
                </tr>
                <tr>
                  <td style="color: #666; font-size: 14px;"><strong>📍 Source:</strong> {escape(data.source)}</td>
                  <td style="color: #666; font-size: 14px;"><strong>🆔 Report ID:</strong> {escape(data.report_id)}</td>
                </tr>{url_html}
              </table>
            </td>
          </tr>
          <tr>
            <td style="background-color: #f8f9fa; padding: 30px; text-align: center; border-top: 1px solid #e0e0e0;">
              <p style="margin: 0 0 10px 0; color: #666; font-size: 14px;">Powered by <strong style="color: #667eea;">Cognition Digest</strong></p>
              <p style="margin: 0; color: #999; font-size: 12px;">AI-powered content summarization for the modern era</p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>"""


class SendGridEmailSender:
    """Sends digest emails through the SendGrid v3 mail API."""

    def __init__(
        self,
        api_key: Optional[str],
        from_email: str,
        from_name: str,
        api_url: str = "https://api.sendgrid.com/v3/mail/send",
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name
        self.api_url = api_url
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def build_payload(self, to_email: str, data: DigestEmail) -> dict:
        return {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {"email": self.from_email, "name": self.from_name},
            "subject": render_subject(data),
            "content": [
                {"type": "text/plain", "value": render_plain_text(data)},
                {"type": "text/html", "value": render_html(data)},
            ],
        }

    async def send(self, to_email: str, data: DigestEmail) -> None:
        """
        Send a digest email.

        Raises:
            DeliveryError: If SendGrid is not configured or the request failed
        """
        if not self.configured:
            logger.warning("SendGrid API key not configured, skipping email send")
            raise DeliveryError("SendGrid not configured")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    self.api_url,
                    json=self.build_payload(to_email, data),
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"SendGrid HTTP error {e.response.status_code} for {to_email}: {e.response.text}"
            )
            status_code = e.response.status_code
            raise DeliveryError(
                f"SendGrid returned {status_code}",
                retryable=status_code == 429 or status_code >= 500,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"SendGrid request error for {to_email}: {e}")
            raise DeliveryError(f"SendGrid request failed: {e}", retryable=True) from e

        logger.info(f"Email sent successfully to {to_email}")

    async def send_test(self, to_email: str) -> None:
        """Send a fixed test digest to verify the transport."""
        await self.send(
            to_email,
            DigestEmail(
                title="Test Email - AI Agent Revolution",
                key_points=[
                    "This is a test email from Cognition Digest",
                    "SendGrid integration is working correctly",
                    "You should receive beautifully formatted emails",
                ],
                word_count=42,
                full_text=(
                    "This is a test email to verify that SendGrid integration is working "
                    "properly. If you receive this email, your email service is configured correctly!"
                ),
                source="test",
                language="en",
                report_id=f"test_{int(datetime.now(timezone.utc).timestamp() * 1000)}",
            ),
        )
