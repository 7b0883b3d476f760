from datetime import datetime, timezone
from html import escape

from app.config import settings
from app.models.vault import OTPPurpose

_OTP_COPY = {
    OTPPurpose.signup: (
        "Your {brand} Verification Code",
        "Verify Your Email",
        "Use this code to complete your {brand} registration.",
    ),
    OTPPurpose.password_reset: (
        "Your {brand} Password Reset Code",
        "Reset Your Password",
        "Use this code to reset your {brand} password.",
    ),
    OTPPurpose.emergency_access: (
        "Your {brand} Emergency Access Code",
        "Emergency Access Request",
        "Use this code to access the documents shared with you.",
    ),
    OTPPurpose.two_factor: (
        "Your {brand} Sign-in Code",
        "Two-Factor Verification",
        "Use this code to confirm it is you.",
    ),
}


def _layout(title: str, body: str) -> str:
    brand = escape(settings.brand_name)
    year = datetime.now(timezone.utc).year
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; background-color: #f5f5f5; padding: 40px 20px;">
  <table width="100%" cellpadding="0" cellspacing="0" style="max-width: 500px; margin: 0 auto; background-color: #ffffff; border-radius: 16px;">
    <tr><td style="padding: 40px;">
      <h1 style="color: #1F2121; font-size: 24px; text-align: center;">{escape(title)}</h1>
      {body}
    </td></tr>
    <tr><td style="padding: 20px 40px; background-color: #F9FAFB; color: #9CA3AF; font-size: 12px; text-align: center;">
      &copy; {year} {brand}. Secure your family's legacy.
    </td></tr>
  </table>
</body>
</html>"""


def otp_email(purpose: OTPPurpose, code: str, name: str | None = None) -> tuple[str, str]:
    subject, title, intro = _OTP_COPY[purpose]
    brand = settings.brand_name
    body = f"""
      <p style="color: #626C71; font-size: 16px; text-align: center;">
        Hi {escape(name or "there")},<br/>{escape(intro.format(brand=brand))}
      </p>
      <div style="background-color: #F3E8FF; border-radius: 12px; padding: 24px; text-align: center;">
        <span style="font-size: 36px; font-weight: 700; letter-spacing: 8px; color: #6D28D9;">{code}</span>
      </div>
      <p style="color: #9CA3AF; font-size: 13px; text-align: center;">
        This code expires in {settings.otp_ttl_minutes} minutes.<br/>
        If you didn't request this, you can safely ignore this email.
      </p>"""
    return subject.format(brand=brand), _layout(title, body)


def nominee_verification_email(
    nominee_name: str, owner_name: str | None, link: str
) -> tuple[str, str]:
    owner = escape(owner_name or "A family member")
    body = f"""
      <p style="color: #626C71; font-size: 16px;">Hi {escape(nominee_name)},</p>
      <p style="color: #626C71; font-size: 16px;">
        {owner} has added you as a trusted nominee on {escape(settings.brand_name)}.
        Confirm your email to be able to receive emergency access.
      </p>
      <p style="text-align: center;">
        <a href="{escape(link, quote=True)}" style="background-color: #6D28D9; color: #ffffff; padding: 12px 24px; border-radius: 8px; text-decoration: none;">Verify as nominee</a>
      </p>"""
    return f"You've been added as a nominee on {settings.brand_name}", _layout(
        "Nominee Verification", body
    )


def emergency_access_email(
    nominee_name: str, owner_name: str | None, custom_message: str | None
) -> tuple[str, str]:
    owner = escape(owner_name or "A family member")
    note = ""
    if custom_message:
        note = f"""
      <blockquote style="border-left: 4px solid #6D28D9; margin: 16px 0; padding: 8px 16px; color: #1F2121;">
        {escape(custom_message)}
      </blockquote>"""
    body = f"""
      <p style="color: #626C71; font-size: 16px;">Hi {escape(nominee_name)},</p>
      <p style="color: #626C71; font-size: 16px;">
        {owner} has been inactive for longer than the period they configured, and
        emergency access to the documents they shared with you is now available.
      </p>{note}
      <p style="color: #626C71; font-size: 16px;">
        Open {escape(settings.brand_name)}, choose Emergency Access and enter this
        email address to receive a one-time code.
      </p>"""
    return f"Emergency access is available on {settings.brand_name}", _layout(
        "Emergency Access Granted", body
    )
