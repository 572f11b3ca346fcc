import smtplib
from datetime import datetime
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape
from loguru import logger

from app.core.config import settings

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)


# Helper to get template
def get_template(template_name):
    return _env.get_template(template_name)


# Helper to send email via SMTP
def send_email_via_smtp(to_email, subject, html_content) -> bool:
    # Only HOST is required; user/pass are optional (local catchers like Mailpit)
    if not settings.SMTP_HOST:
        logger.warning(f"⚠️ SMTP host not configured. Skipping email '{subject}' to {to_email}")
        return False

    try:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{settings.EMAILS_FROM_NAME} <{settings.EMAILS_FROM_EMAIL}>"
        msg["To"] = to_email
        msg.attach(MIMEText(html_content, "html"))

        logger.debug(f"📧 Connecting to SMTP: {settings.SMTP_HOST}:{settings.SMTP_PORT}")

        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as server:
            server.ehlo()

            # TLS only on submission ports
            if settings.SMTP_PORT in [587, 2525]:
                server.starttls()
                server.ehlo()

            if settings.SMTP_USER and settings.SMTP_PASSWORD:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)

            server.sendmail(settings.EMAILS_FROM_EMAIL, to_email, msg.as_string())

        logger.success(f"✅ Email '{subject}' sent to {to_email}")
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"❌ Failed to send email '{subject}' to {to_email}: {e}")
        return False


def _render_and_send(template_name: str, context: dict, to_email: str, subject: str) -> bool:
    try:
        html_content = get_template(template_name).render(context)
    except TemplateError:
        logger.exception(f"Error rendering email template {template_name}")
        return False
    return send_email_via_smtp(to_email, subject, html_content)


# ---------------------------------------------------------
# 1. WELCOME EMAIL
# ---------------------------------------------------------
def send_welcome_email(user_data: dict) -> bool:
    """
    user_data requires: name, email, username; role is optional.
    """
    context = {
        "name": user_data.get("name"),
        "username": user_data.get("username"),
        "email": user_data.get("email"),
        "role": user_data.get("role"),
        "login_url": f"{settings.FRONTEND_URL}/login",
    }
    return _render_and_send("welcome.html", context, user_data.get("email"), "Welcome to the CRM")


# ---------------------------------------------------------
# 2. PASSWORD RESET OTP
# ---------------------------------------------------------
def send_otp_email(email: str, otp: str, name: str | None = None) -> bool:
    context = {
        "name": name,
        "otp": otp,
        "expires_minutes": settings.OTP_EXPIRE_MINUTES,
    }
    return _render_and_send("password_reset_otp.html", context, email, "Your password reset code")


# ---------------------------------------------------------
# 3. LEAD ASSIGNMENT
# ---------------------------------------------------------
def send_lead_assignment_email(data: dict) -> bool:
    """
    data requires: email, name, lead_name, lead_id; optional: lead_email,
    lead_phone, technology, assigned_by.
    """
    context = {
        "name": data.get("name"),
        "lead_id": data.get("lead_id"),
        "lead_name": data.get("lead_name"),
        "lead_email": data.get("lead_email"),
        "lead_phone": data.get("lead_phone"),
        "technology": ", ".join(data.get("technology") or []),
        "assigned_by": data.get("assigned_by"),
        "assigned_at": datetime.now().strftime("%d-%m-%Y %I:%M %p"),
        "lead_url": f"{settings.FRONTEND_URL}/leads/{data.get('lead_id')}",
    }
    return _render_and_send(
        "lead_assignment.html", context, data.get("email"), f"New lead assigned: {data.get('lead_name')}"
    )


# ---------------------------------------------------------
# 4. PACKAGE DETAILS
# ---------------------------------------------------------
def send_package_details_email(to_email: str, package: dict, recipient_name: str | None = None) -> bool:
    context = {
        "name": recipient_name,
        "package": package,
        "sent_date": datetime.now().strftime("%d-%m-%Y"),
    }
    return _render_and_send(
        "package_details.html", context, to_email, f"Package details: {package.get('plan_name')}"
    )
