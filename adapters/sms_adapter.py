"""SMS gateway adapter.

Exposes a single capability, ``send(mobile, message)``, which never raises:
failures are reported in the returned result so callers can decide what a
failed SMS means for them.
"""

from typing import Any, Dict, Optional
import logging

import httpx

from app.config import settings

logger = logging.getLogger("tiffinmate.sms")


class SmsGateway:
    """Sends text messages through the configured provider."""

    def __init__(
        self,
        provider: Optional[str] = None,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        sender_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.provider = provider or settings.sms_provider
        self.api_key = api_key if api_key is not None else settings.fast2sms_api_key
        self.url = url or settings.fast2sms_url
        self.sender_id = sender_id or settings.sms_sender_id
        self.timeout = timeout or settings.sms_timeout_sec

    def send(self, mobile: str, message: str) -> Dict[str, Any]:
        """Send ``message`` to ``mobile``.

        Returns:
            {"success": bool, "provider": str, "response": ...} on success or
            {"success": False, "provider": str, "error": str} on failure
        """
        if self.provider == "console":
            logger.info("SMS to %s: %s", mobile, message)
            return {"success": True, "provider": "console", "response": None}

        try:
            return self._send_fast2sms(mobile, message)
        except httpx.HTTPError as exc:
            logger.error("SMS to %s failed: %s", mobile, exc)
            return {"success": False, "provider": self.provider, "error": str(exc)}
        except ValueError as exc:
            logger.error("SMS to %s failed: %s", mobile, exc)
            return {"success": False, "provider": self.provider, "error": str(exc)}

    def _send_fast2sms(self, mobile: str, message: str) -> Dict[str, Any]:
        if not self.api_key:
            raise ValueError("Fast2SMS API key not configured")

        response = httpx.post(
            self.url,
            json={
                "route": "v3",
                "sender_id": self.sender_id,
                "message": message,
                "language": "english",
                "flash": 0,
                "numbers": mobile,
            },
            headers={"authorization": self.api_key},
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json()
        accepted = bool(data.get("return"))
        if not accepted:
            logger.warning("Fast2SMS rejected message to %s: %s", mobile, data)
        return {
            "success": accepted,
            "provider": "fast2sms",
            "response": data,
            **({} if accepted else {"error": str(data.get("message") or "rejected")}),
        }


gateway = SmsGateway()


def send(mobile: str, message: str) -> Dict[str, Any]:
    """Send through the module-level gateway."""
    return gateway.send(mobile, message)
