"""
app/services/notification_service.py

Outbound email collaborator for shaped reports.

One POST per send, carrying the full report payload as JSON. The
collaborator answers with a JSON object whose boolean ``success`` field
decides the outcome. There are no retries: any failure is terminal for
that user action and surfaces as :class:`~app.errors.ExportError`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import requests

from app.config import NotificationSettings, get_notification_settings
from app.errors import ExportError

logger = logging.getLogger(__name__)


class EmailNotifier:
    """
    Sends report payloads to the configured email endpoint.

    Parameters
    ----------
    settings:
        Endpoint, API key and timeout.
    session:
        Optional ``requests.Session``; a new one is created when omitted.
    """

    def __init__(
        self,
        settings: NotificationSettings | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings or get_notification_settings()
        self._session = session or requests.Session()

    def send_report(
        self,
        *,
        recipients: Sequence[str],
        subject: str,
        report: dict[str, Any],
        message: str | None = None,
    ) -> None:
        """
        Post *report* to the email collaborator.

        Raises
        ------
        ExportError
            When notifications are disabled or unconfigured, on transport
            failure, non-2xx status, a non-JSON body, or ``success`` not
            being ``true``.
        """
        if not self._settings.enabled or not self._settings.endpoint_url:
            raise ExportError("Report email is not configured; set REPORT_EMAIL_ENABLED and REPORT_EMAIL_ENDPOINT.")
        if not recipients:
            raise ExportError("At least one recipient is required.")

        headers = {"Content-Type": "application/json"}
        if self._settings.api_key:
            headers["Authorization"] = f"Bearer {self._settings.api_key}"

        body = {
            "to": list(recipients),
            "subject": subject,
            "message": message or "",
            "report": report,
        }

        try:
            response = self._session.post(
                self._settings.endpoint_url,
                json=body,
                headers=headers,
                timeout=self._settings.timeout_seconds,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error(
                "Report email request failed report=%r endpoint=%s",
                report.get("report_key"),
                self._settings.endpoint_url,
                exc_info=True,
            )
            raise ExportError(f"Email delivery failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            logger.error("Report email response was not valid JSON report=%r", report.get("report_key"))
            raise ExportError("Email service returned an invalid response.") from exc

        if not isinstance(payload, dict) or payload.get("success") is not True:
            detail = payload.get("error") if isinstance(payload, dict) else None
            logger.error(
                "Report email rejected report=%r detail=%s",
                report.get("report_key"),
                detail,
            )
            raise ExportError(f"Email service reported failure{': ' + str(detail) if detail else '.'}")

        logger.info(
            "Report email sent report=%r recipients=%d",
            report.get("report_key"),
            len(recipients),
        )


# ---------------------------------------------------------------------------
# Singleton factory
# ---------------------------------------------------------------------------


_notifier: EmailNotifier | None = None


def get_email_notifier() -> EmailNotifier:
    global _notifier
    if _notifier is None:
        _notifier = EmailNotifier()
    return _notifier
