from html import escape

OTP_SUBJECT = "Your CV Builder password reset code"
WELCOME_SUBJECT = "Welcome to CV Builder"


def otp_email(first_name: str, otp: str, ttl_minutes: int, max_attempts: int) -> str:
    name = escape(first_name) or "there"
    return (
        f"<p>Hi {name},</p>"
        "<p>We received a request to reset your CV Builder password. "
        "Use the code below to continue:</p>"
        f'<p style="font-size:28px;letter-spacing:6px"><strong>{otp}</strong></p>'
        f"<p>The code expires in {ttl_minutes} minutes and can be tried {max_attempts} times.</p>"
        "<p>This email might land in your spam folder. If you did not ask for a "
        "password reset you can ignore it; your password stays the same.</p>"
    )


def welcome_email(first_name: str) -> str:
    name = escape(first_name) or "there"
    return (
        f"<p>Hi {name},</p>"
        "<p>Your CV Builder account is ready. Sign in any time to start building your CV.</p>"
    )
