import asyncio
import logging
import smtplib
from datetime import date, timedelta
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from urllib.parse import urlencode

from clinic_booking.core.clinic_time import local_to_utc, parse_local_time, to_local
from clinic_booking.core.config import settings
from clinic_booking.services.event_description import BookingEventData

logger = logging.getLogger(__name__)

_WEEKDAYS_ZH = ("一", "二", "三", "四", "五", "六", "日")


def _send_email_sync(to_email: str, subject: str, html_body: str) -> bool:
    """Send email via SMTP (blocking). Returns True only if the server accepted it."""
    if not settings.email_enabled:
        logger.debug("Email disabled (SMTP not configured), skipping send")
        return False
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{settings.from_name} <{settings.from_email}>"
    msg["To"] = to_email
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as server:
            server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.from_email, [to_email], msg.as_string())
        logger.info("Email sent to %s", to_email)
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.exception("Failed to send email to %s: %s", to_email, e)
        return False


def _html_escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def format_slot_display(d: date, time_str: str, duration_minutes: int | None = None) -> tuple[str, str]:
    """(date line, time line) in clinic-local time, e.g. ('2026年3月16日 (星期一)', '10:00 – 10:15')."""
    start = to_local(local_to_utc(d, parse_local_time(time_str)))
    date_line = f"{start.year}年{start.month}月{start.day}日 (星期{_WEEKDAYS_ZH[start.weekday()]})"
    if not duration_minutes:
        return date_line, start.strftime("%H:%M")
    end = start + timedelta(minutes=duration_minutes)
    return date_line, f"{start.strftime('%H:%M')} – {end.strftime('%H:%M')}"


def manage_links(event_id: str, calendar_id: str) -> dict[str, str]:
    if not settings.public_base_url:
        return {}
    base = settings.public_base_url.rstrip("/")
    query = urlencode({"eventId": event_id, "calendarId": calendar_id})
    return {
        "reschedule": f"{base}/reschedule?{query}",
        "cancel": f"{base}/cancel?{query}",
    }


def _render_email(
    title: str,
    intro: str,
    data: BookingEventData,
    date_line: str,
    time_line: str,
    links: dict[str, str] | None = None,
) -> str:
    logo_html = ""
    if settings.email_logo_url:
        logo_html = f'<img src="{settings.email_logo_url}" alt="{settings.site_name}" width="120" style="display:block;margin-bottom:24px;" />'
    doctor = _html_escape(f"{data.doctor_name_zh} ({data.doctor_name})".strip())
    clinic = _html_escape(f"{data.clinic_name_zh} ({data.clinic_name})".strip())
    address = _html_escape(data.clinic_address)
    links_section = ""
    if links:
        links_section = f"""
              <p style="margin:0 0 8px 0;font-size:14px;color:#374151;">
                <a href="{links['reschedule']}" style="color:#4d7c0f;">Reschedule / 改期</a> &nbsp;·&nbsp;
                <a href="{links['cancel']}" style="color:#b91c1c;">Cancel / 取消</a>
              </p>"""
    return f"""
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
</head>
<body style="margin:0;padding:0;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,Oxygen,Ubuntu,sans-serif;background-color:#f3f4f6;">
  <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="background-color:#f3f4f6;">
    <tr>
      <td align="center" style="padding:40px 16px;">
        <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="max-width:560px;background:#ffffff;border-radius:12px;box-shadow:0 4px 6px rgba(0,0,0,0.05);overflow:hidden;">
          <tr>
            <td style="padding:32px 32px 24px 32px;">
              {logo_html}
              <h1 style="margin:0 0 8px 0;font-size:22px;font-weight:600;color:#111827;">{title}</h1>
              <p style="margin:0 0 24px 0;font-size:15px;color:#6b7280;">{_html_escape(data.patient_name) or 'Hi'}，{intro}</p>
              <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="background:#f9fafb;border-radius:8px;margin-bottom:24px;">
                <tr>
                  <td style="padding:20px 24px;">
                    <p style="margin:0 0 8px 0;font-size:12px;color:#6b7280;">Date / 日期</p>
                    <p style="margin:0;font-size:16px;font-weight:600;color:#111827;">{date_line}</p>
                    <p style="margin:12px 0 0 0;font-size:12px;color:#6b7280;">Time / 時間</p>
                    <p style="margin:0;font-size:16px;font-weight:600;color:#111827;">{time_line}</p>
                    <p style="margin:12px 0 0 0;font-size:12px;color:#6b7280;">Doctor / 醫師</p>
                    <p style="margin:0;font-size:16px;color:#111827;">{doctor}</p>
                    <p style="margin:12px 0 0 0;font-size:12px;color:#6b7280;">Clinic / 診所</p>
                    <p style="margin:0;font-size:16px;color:#111827;">{clinic}</p>
                    <p style="margin:4px 0 0 0;font-size:13px;color:#6b7280;">{address}</p>
                  </td>
                </tr>
              </table>
              {links_section}
            </td>
          </tr>
          <tr>
            <td style="padding:24px 32px 32px 32px;background:#f9fafb;border-top:1px solid #e5e7eb;">
              <p style="margin:0 0 4px 0;font-size:13px;font-weight:600;color:#111827;">{settings.site_name}</p>
              <p style="margin:0;font-size:13px;color:#6b7280;">
                {settings.contact_email} &nbsp;·&nbsp; {settings.contact_phone}
              </p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""


def send_booking_confirmation_email(
    data: BookingEventData,
    d: date,
    time_str: str,
    duration_minutes: int,
    event_id: str,
    calendar_id: str,
    rescheduled: bool = False,
) -> bool:
    date_line, time_line = format_slot_display(d, time_str, duration_minutes)
    if rescheduled:
        subject = f"{settings.site_name} – 預約已改期 Appointment Rescheduled"
        title, intro = "Appointment Rescheduled", "您的預約時間已更新。"
    else:
        subject = f"{settings.site_name} – 預約確認 Appointment Confirmed"
        title, intro = "Appointment Confirmed", "您的預約已確認。"
    html = _render_email(title, intro, data, date_line, time_line, manage_links(event_id, calendar_id))
    return _send_email_sync(data.email, subject, html)


def send_booking_cancellation_email(data: BookingEventData, d: date, time_str: str) -> bool:
    date_line, time_line = format_slot_display(d, time_str)
    subject = f"{settings.site_name} – 預約已取消 Appointment Cancelled"
    html = _render_email("Appointment Cancelled", "您的預約已取消。", data, date_line, time_line)
    return _send_email_sync(data.email, subject, html)


def send_booking_reminder_email(
    data: BookingEventData, d: date, time_str: str, event_id: str, calendar_id: str
) -> bool:
    date_line, time_line = format_slot_display(d, time_str)
    subject = f"{settings.site_name} – 明日預約提醒 Appointment Reminder"
    html = _render_email(
        "Appointment Reminder", "提提您明天的預約。", data, date_line, time_line,
        manage_links(event_id, calendar_id),
    )
    return _send_email_sync(data.email, subject, html)


class EmailNotifier:
    """Async facade over the blocking SMTP senders; each send runs in a worker thread."""

    async def send_confirmation(
        self,
        data: BookingEventData,
        d: date,
        time_str: str,
        duration_minutes: int,
        event_id: str,
        calendar_id: str,
        rescheduled: bool = False,
    ) -> bool:
        return await asyncio.to_thread(
            send_booking_confirmation_email,
            data, d, time_str, duration_minutes, event_id, calendar_id, rescheduled,
        )

    async def send_cancellation(self, data: BookingEventData, d: date, time_str: str) -> bool:
        return await asyncio.to_thread(send_booking_cancellation_email, data, d, time_str)

    async def send_reminder(
        self, data: BookingEventData, d: date, time_str: str, event_id: str, calendar_id: str
    ) -> bool:
        return await asyncio.to_thread(
            send_booking_reminder_email, data, d, time_str, event_id, calendar_id
        )
