import httpx
from typing import Any, Dict, Optional

from app.config import get_settings
from app.core.exceptions import AutoLogServiceError
from app.core.logging import get_logger
from app.core.security import create_access_token

settings = get_settings()
logger = get_logger(__name__)


class AutoLogClient:
    """Client for the auto-log creation endpoint.

    The endpoint decides what to log for a date; callers only decide whether
    a call is warranted. Requests are not retried.
    """

    def __init__(self, endpoint_url: Optional[str] = None, timeout: Optional[float] = None):
        self.endpoint_url = endpoint_url or settings.auto_log_endpoint_url
        self.timeout = httpx.Timeout(timeout or settings.auto_log_request_timeout)

    async def create_auto_logs(self, target_date: str, user_id: str) -> Dict[str, Any]:
        """POST ``{targetDate, userId}`` and return the response summary.

        Raises:
            AutoLogServiceError: On transport errors or non-2xx responses.
        """
        payload = {"targetDate": target_date, "userId": user_id}
        # The endpoint authenticates the user it logs for
        headers = {"Authorization": f"Bearer {create_access_token(data={'sub': user_id})}"}

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(self.endpoint_url, json=payload, headers=headers)
            except httpx.HTTPError as e:
                raise AutoLogServiceError(f"Request failed: {e}")

        if not response.is_success:
            raise AutoLogServiceError(
                f"Auto-logging API failed: {response.status_code} {response.reason_phrase}",
                status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            raise AutoLogServiceError("Auto-logging API returned invalid JSON")

        summary = data.get("summary") if isinstance(data, dict) else None
        logger.debug("auto_log_endpoint_called", user_id=user_id, target_date=target_date)
        return summary or {}
