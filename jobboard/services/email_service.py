"""
AWS SES Email Service for account emails (welcome and password reset).

Handles email formatting, template rendering, and AWS SES integration.
"""

import html
import logging
from typing import Optional
import boto3
from botocore.exceptions import ClientError, BotoCoreError
from jobboard.core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """
    Service for sending emails via AWS SES.

    Every send method returns True on success and False on failure; callers
    decide whether a failed send is fatal.
    """

    def __init__(self):
        """Initialize AWS SES client"""
        session_kwargs = {
            'region_name': settings.AWS_REGION,
        }

        # Add credentials if provided (otherwise uses IAM role)
        if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
            session_kwargs['aws_access_key_id'] = settings.AWS_ACCESS_KEY_ID
            session_kwargs['aws_secret_access_key'] = settings.AWS_SECRET_ACCESS_KEY

        self.ses_client = boto3.client('ses', **session_kwargs)

    def send_welcome_email(self, to_email: str, user_name: str, url: str) -> bool:
        """
        Send the welcome email after signup.

        Args:
            to_email: Recipient email address
            user_name: User's full name, the first word is used as greeting
            url: Link to the user's profile page
        """
        first_name = user_name.split(" ")[0]
        subject = f"Welcome to {settings.SITE_NAME}!"
        html_body = self._wrap_html(
            title=subject,
            greeting=f"Hi {html.escape(first_name)},",
            paragraphs=[
                f"Welcome to the {settings.SITE_NAME} family, we're glad to have you.",
                "Your account is ready. You can complete your profile at any time.",
            ],
            button_label="Go to your profile",
            button_url=url,
        )
        text_body = (
            f"Hi {first_name},\n\n"
            f"Welcome to the {settings.SITE_NAME} family, we're glad to have you.\n\n"
            f"Complete your profile here: {url}\n\n"
            f"---\n{settings.SITE_NAME}\n"
        )
        return self._send(to_email, subject, html_body, text_body)

    def send_password_reset_email(self, to_email: str, user_name: str, reset_url: str) -> bool:
        """
        Send the password reset link.

        Args:
            to_email: Recipient email address
            user_name: User's full name
            reset_url: URL embedding the plain reset token
        """
        first_name = user_name.split(" ")[0]
        minutes = settings.PASSWORD_RESET_EXPIRE_MINUTES
        subject = f"Your password reset token (valid for only {minutes} minutes)"
        html_body = self._wrap_html(
            title="Reset your password",
            greeting=f"Hi {html.escape(first_name)},",
            paragraphs=[
                "Forgot your password? Submit a PATCH request with your new password "
                "and passwordConfirm to the link below.",
                f"The link expires in <strong>{minutes} minutes</strong>.",
                "If you didn't forget your password, please ignore this email.",
            ],
            button_label="Reset your password",
            button_url=reset_url,
        )
        text_body = (
            f"Hi {first_name},\n\n"
            f"Forgot your password? Submit a PATCH request with your new password and "
            f"passwordConfirm to: {reset_url}\n\n"
            f"This link expires in {minutes} minutes.\n\n"
            f"If you didn't forget your password, please ignore this email.\n"
        )
        return self._send(to_email, subject, html_body, text_body)

    def _send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        try:
            response = self.ses_client.send_email(
                Source=f"{settings.AWS_SES_FROM_NAME} <{settings.AWS_SES_FROM_EMAIL}>",
                Destination={'ToAddresses': [to_email]},
                Message={
                    'Subject': {'Data': subject, 'Charset': 'UTF-8'},
                    'Body': {
                        'Html': {'Data': html_body, 'Charset': 'UTF-8'},
                        'Text': {'Data': text_body, 'Charset': 'UTF-8'}
                    }
                }
            )

            message_id = response.get('MessageId')
            logger.info(f"Email '{subject}' sent to {to_email} (MessageId: {message_id})")
            return True

        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']
            logger.error(f"AWS SES ClientError: {error_code} - {error_message}")

            if error_code == 'MessageRejected':
                logger.error(f"Email rejected: {error_message}")
            elif error_code == 'MailFromDomainNotVerified':
                logger.error("Sender email not verified in SES")

            return False

        except BotoCoreError as e:
            logger.error(f"AWS BotoCoreError: {str(e)}")
            return False

    def _wrap_html(
        self,
        title: str,
        greeting: str,
        paragraphs: list,
        button_label: Optional[str] = None,
        button_url: Optional[str] = None,
    ) -> str:
        """
        Render the shared HTML layout around the given paragraphs.

        Greeting and paragraphs are inserted as markup, so callers escape any
        user-supplied text in them. Title and button are escaped here.
        """
        title = html.escape(title)
        body = "\n".join(
            f'<p style="margin: 0 0 20px 0; color: #666666; font-size: 16px; line-height: 1.5;">{p}</p>'
            for p in paragraphs
        )
        button = ""
        if button_label and button_url:
            button_label = html.escape(button_label)
            button_url = html.escape(button_url, quote=True)
            button = f"""
                            <div style="text-align: center; margin: 0 0 30px 0;">
                                <a href="{button_url}" style="background-color: #4F46E5; color: #ffffff; padding: 14px 28px; border-radius: 6px; text-decoration: none; font-weight: 600;">
                                    {button_label}
                                </a>
                            </div>"""

        return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
</head>
<body style="margin: 0; padding: 0; font-family: Arial, sans-serif; background-color: #f4f4f4;">
    <table role="presentation" style="width: 100%; border-collapse: collapse;">
        <tr>
            <td align="center" style="padding: 40px 0;">
                <table role="presentation" style="width: 600px; border-collapse: collapse; background-color: #ffffff; border-radius: 8px;">
                    <tr>
                        <td style="padding: 40px 40px 20px 40px; text-align: center;">
                            <h1 style="margin: 0; color: #333333; font-size: 28px; font-weight: 600;">{title}</h1>
                        </td>
                    </tr>
                    <tr>
                        <td style="padding: 0 40px 40px 40px;">
                            <p style="margin: 0 0 20px 0; color: #666666; font-size: 16px; line-height: 1.5;">{greeting}</p>
                            {body}
                            {button}
                        </td>
                    </tr>
                    <tr>
                        <td style="padding: 20px 40px; background-color: #f8f9fa; border-top: 1px solid #e5e7eb; border-radius: 0 0 8px 8px;">
                            <p style="margin: 0; color: #999999; font-size: 12px; text-align: center;">
                                &copy; {settings.SITE_NAME}. All rights reserved.
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


# Singleton instance
email_service = EmailService()
