# shopeasy/core/infrastructure/email_service.py

from html import escape
from typing import Optional
from fastapi_mail import FastMail, MessageSchema, ConnectionConfig

from ..config import settings
from ..exceptions import EmailDeliveryError
from ...logging import logger


def _build_connection_config() -> ConnectionConfig:
    return ConnectionConfig(
        MAIL_USERNAME=settings.MAIL_USERNAME,
        MAIL_PASSWORD=settings.MAIL_PASSWORD,
        MAIL_FROM=settings.MAIL_FROM,
        MAIL_FROM_NAME=settings.MAIL_FROM_NAME,
        MAIL_PORT=settings.MAIL_PORT,
        MAIL_SERVER=settings.MAIL_SERVER,
        MAIL_STARTTLS=settings.MAIL_STARTTLS,
        MAIL_SSL_TLS=settings.MAIL_SSL_TLS,
        USE_CREDENTIALS=True,
        VALIDATE_CERTS=True,
    )


def _wrap(title: str, body: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="UTF-8">
        <title>{title}</title>
        <style>
            body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
            .container {{ max-width: 600px; margin: 20px auto; padding: 20px; border: 1px solid #ddd; border-radius: 5px; }}
            .code {{ font-size: 32px; font-weight: bold; letter-spacing: 6px; color: #007bff; text-align: center; }}
            .button {{
                display: inline-block;
                padding: 12px 24px;
                margin: 20px 0;
                background-color: #007bff;
                color: #ffffff !important;
                text-decoration: none;
                border-radius: 5px;
                font-size: 16px;
            }}
            .warning {{ background-color: #fff3cd; padding: 12px; border-radius: 5px; }}
            .footer {{ margin-top: 20px; font-size: 12px; color: #777; }}
        </style>
    </head>
    <body>
        <div class="container">
            {body}
            <div class="footer">
                <p>&copy; ShopEasy. All rights reserved.</p>
            </div>
        </div>
    </body>
    </html>
    """


class NotificationGateway:
    """
    Sends the transactional emails of the account workflows.

    Every send returns True on success or raises EmailDeliveryError; the caller
    decides whether a failed delivery aborts its workflow. When EMAIL_ENABLED is
    false the message is logged instead of sent.
    """

    def __init__(self, enabled: Optional[bool] = None):
        self.enabled = settings.EMAIL_ENABLED if enabled is None else enabled
        self._mailer: Optional[FastMail] = None

    def _get_mailer(self) -> FastMail:
        if self._mailer is None:
            self._mailer = FastMail(_build_connection_config())
        return self._mailer

    async def _deliver(self, kind: str, recipient: str, subject: str, html: str, log_hint: str = "") -> bool:
        if not self.enabled:
            logger.info(
                "EMAIL_ENABLED is false; skipping real %s email to %s. %s",
                kind,
                recipient,
                log_hint if settings.is_development else "",
            )
            return True

        message = MessageSchema(subject=subject, recipients=[recipient], body=html, subtype="html")
        try:
            await self._get_mailer().send_message(message)
        except Exception as e:
            logger.error(f"Failed to send {kind} email to {recipient}: {e}")
            raise EmailDeliveryError(
                "Failed to send email. Please try again later.",
                technical_details=str(e),
                context={"kind": kind},
            ) from e

        logger.info(f"{kind.capitalize()} email sent successfully to {recipient}")
        return True

    async def send_otp(self, email: str, code: str) -> bool:
        body = f"""
            <h2>Verify your email</h2>
            <p>Use the code below to finish creating your ShopEasy account.</p>
            <p class="code">{code}</p>
            <p>This code expires in {settings.OTP_TTL_MINUTES} minutes.</p>
            <p>If you did not sign up, you can safely ignore this email.</p>
        """
        return await self._deliver("otp", email, "Your ShopEasy verification code", _wrap("Verification code", body), f"OTP: {code}")

    async def send_password_reset(self, email: str, url: str) -> bool:
        body = f"""
            <h2>Reset your password</h2>
            <p>We received a request to reset the password of your ShopEasy account.</p>
            <a href="{url}" class="button" style="color: #ffffff;">Reset Password</a>
            <p>If the button above doesn't work, copy and paste this link into your browser:</p>
            <p><a href="{url}">{url}</a></p>
            <p class="warning">This link expires in {settings.RESET_TOKEN_TTL_MINUTES} minutes and can be used once.</p>
        """
        return await self._deliver("password reset", email, "Reset your ShopEasy password", _wrap("Password reset", body), f"Reset link: {url}")

    async def send_welcome(self, email: str, name: str) -> bool:
        body = f"""
            <h2>Welcome to ShopEasy, {escape(name)}!</h2>
            <p>Your email has been verified and your account is ready.</p>
            <a href="{settings.FRONTEND_URL}" class="button" style="color: #ffffff;">Start Shopping</a>
        """
        return await self._deliver("welcome", email, "Welcome to ShopEasy", _wrap("Welcome", body))

    async def send_security_alert(self, email: str, device_info: Optional[str] = None) -> bool:
        body = f"""
            <h2>Your password was changed</h2>
            <p>The password of your ShopEasy account was just changed.</p>
            <p><strong>Device:</strong> {escape(device_info or "Unknown device")}</p>
            <p class="warning">If this wasn't you, reset your password immediately and contact support.</p>
        """
        return await self._deliver("security alert", email, "Security alert: password changed", _wrap("Security alert", body))


_notifier: Optional[NotificationGateway] = None


def get_notifier() -> NotificationGateway:
    """FastAPI dependency returning the process-wide gateway."""
    global _notifier
    if _notifier is None:
        _notifier = NotificationGateway()
    return _notifier
