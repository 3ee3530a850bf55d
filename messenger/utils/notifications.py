import asyncio
import logging
from typing import Any, Dict, List, Optional

from pyfcm import FCMNotification

logger = logging.getLogger(__name__)


class NoopPush:

    enabled = False

    async def multicast(self, tokens: List[str], title: str, body: str, data: dict | None = None) -> Dict[str, int]:
        return {"success": 0, "failure": 0}


class FcmPush:

    enabled = True

    def __init__(self, client: FCMNotification) -> None:
        self._client = client

    async def multicast(self, tokens: List[str], title: str, body: str, data: dict | None = None) -> Dict[str, int]:
        result = {"success": 0, "failure": 0}
        if not tokens:
            return result
        # FCM data payload values must be strings
        payload = {key: str(value) for key, value in (data or {}).items()}
        for token in tokens:
            try:
                # pyfcm is sync
                await asyncio.to_thread(
                    self._client.notify,
                    fcm_token=token,
                    notification_title=title,
                    notification_body=body,
                    data_payload=payload,
                )
                result["success"] += 1
            except Exception as exc:
                result["failure"] += 1
                logger.warning("FCM delivery to token %s... failed: %s", token[:12], exc)
        return result


def build_push(service_account_file: Optional[str], project_id: Optional[str]) -> Any:
    if not service_account_file or not project_id:
        logger.info("FCM not configured, push notifications disabled")
        return NoopPush()
    return FcmPush(FCMNotification(service_account_file=service_account_file, project_id=project_id))
