import logging
import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(RuntimeError):
    """The mail API could not be reached or rejected the message"""


class EmailService:
    """Sends emails via an HTTP mail API."""

    def __init__(
        self,
        api_url: str = settings.MAIL_API_URL,
        api_key: str = settings.MAIL_API_KEY,
        from_name: str = settings.MAIL_FROM_NAME,
        timeout: float = settings.MAIL_TIMEOUT_SECONDS,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.from_name = from_name
        self.timeout = timeout

    def send(self, to: str, subject: str, body: str) -> None:
        payload = {
            "to": to,
            "subject": subject,
            "body": body,
            "fromName": self.from_name,
            "contentType": "text",
        }
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
        }

        try:
            response = httpx.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise EmailDeliveryError(
                f"Mail API returned {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise EmailDeliveryError(f"Mail request failed: {e}") from e

        logger.info(f"Sent '{subject}' email to {to}")

    def send_reactivation_code(self, to: str, code: str, ttl_minutes: int = 0) -> None:
        body = f"Your account reactivation code is: {code}."
        if ttl_minutes > 0:
            body += f" It will expire in {ttl_minutes} minutes."
        body += " If you did not ask to reactivate your account, ignore this email."
        self.send(to, "Reactivate your account", body)


email_service = EmailService()
