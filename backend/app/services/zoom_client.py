"""Zoom Client 외부 미팅 제공자 연동 레이어입니다.

Server-to-Server OAuth(account_credentials) 토큰을 발급/캐시하고 미팅 생성, 조회, 설정 변경,
클라우드 녹화 조회를 수행합니다. 모든 전송/응답 오류는 ProviderError 로 변환됩니다.
"""

import logging
import threading
import time
from functools import lru_cache
from typing import Any, Optional

import httpx

from app.config import settings
from app.utils.errors import ProviderError

logger = logging.getLogger(__name__)

# 만료 직전 토큰 재사용 방지 여유(초)
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class ZoomClient:
    """Zoom REST API 클라이언트"""

    def __init__(
        self,
        account_id: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        api_base_url: Optional[str] = None,
        oauth_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.account_id = account_id if account_id is not None else settings.ZOOM_ACCOUNT_ID
        self.client_id = client_id if client_id is not None else settings.ZOOM_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else settings.ZOOM_CLIENT_SECRET
        self.api_base_url = (api_base_url or settings.ZOOM_API_BASE_URL).rstrip("/")
        self.oauth_url = oauth_url or settings.ZOOM_OAUTH_URL
        self.timeout = float(timeout or settings.ZOOM_TIMEOUT_SECONDS)
        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._lock = threading.Lock()

    def is_configured(self) -> bool:
        return bool(self.account_id and self.client_id and self.client_secret)

    def _ensure_configured(self) -> None:
        if not self.is_configured():
            raise ProviderError("Zoom 연동 정보(ZOOM_ACCOUNT_ID/CLIENT_ID/CLIENT_SECRET)가 설정되지 않았습니다.")

    def get_access_token(self) -> str:
        self._ensure_configured()
        with self._lock:
            if self._token and time.monotonic() < self._token_expires_at:
                return self._token
            try:
                response = httpx.post(
                    self.oauth_url,
                    params={"grant_type": "account_credentials", "account_id": self.account_id},
                    auth=(self.client_id, self.client_secret),
                    timeout=self.timeout,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise ProviderError(
                    f"Zoom 인증 실패: {self._error_message(exc.response)}",
                    provider_status=exc.response.status_code,
                ) from exc
            except httpx.HTTPError as exc:
                raise ProviderError(f"Zoom 인증 요청 실패: {exc}") from exc
            body = self._json_body(response, "POST oauth/token")

            token = body.get("access_token")
            if not token:
                raise ProviderError("Zoom 인증 응답에 access_token 이 없습니다.")
            expires_in = int(body.get("expires_in") or 3600)
            self._token = token
            self._token_expires_at = time.monotonic() + max(0, expires_in - TOKEN_EXPIRY_MARGIN_SECONDS)
            return token

    def _error_message(self, response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            return str(body.get("message") or body.get("reason") or body)
        return str(body)

    def _json_body(self, response: httpx.Response, label: str) -> dict[str, Any]:
        """2xx 응답 본문을 dict 로 해석합니다. JSON 이 아니거나 객체가 아니면 ProviderError."""
        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderError(
                f"Zoom 응답을 해석할 수 없습니다({label}).",
                provider_status=response.status_code,
            ) from exc
        if not isinstance(body, dict):
            raise ProviderError(
                f"Zoom 응답 형식이 올바르지 않습니다({label}).",
                provider_status=response.status_code,
            )
        return body

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        token = self.get_access_token()
        try:
            response = httpx.request(
                method,
                f"{self.api_base_url}{path}",
                headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
                json=json,
                params=params,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 401:
                # 다음 호출에서 토큰을 다시 발급받도록 캐시를 비웁니다.
                with self._lock:
                    self._token = None
            raise ProviderError(
                f"Zoom API 오류({method} {path}): {self._error_message(exc.response)}",
                provider_status=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"Zoom API 요청 실패({method} {path}): {exc}") from exc
        if response.status_code == 204 or not response.content:
            return {}
        return self._json_body(response, f"{method} {path}")

    def create_meeting(self, payload: dict[str, Any], user_id: str = "me") -> dict[str, Any]:
        body = self._request("POST", f"/users/{user_id}/meetings", json=payload)
        if not body.get("id") or not body.get("join_url"):
            raise ProviderError("Zoom 미팅 생성 응답에 id/join_url 이 없습니다.")
        logger.info("[zoom] meeting created id=%s topic=%s", body.get("id"), payload.get("topic"))
        return body

    def get_meeting(self, meeting_id: str) -> dict[str, Any]:
        return self._request("GET", f"/meetings/{meeting_id}")

    def update_meeting(self, meeting_id: str, payload: dict[str, Any]) -> None:
        self._request("PATCH", f"/meetings/{meeting_id}", json=payload)
        logger.info("[zoom] meeting updated id=%s keys=%s", meeting_id, sorted(payload.keys()))

    def get_meeting_recordings(self, meeting_id: str) -> list[dict[str, Any]]:
        """미팅의 완료된 녹화 파일 목록을 정규화해 반환합니다."""
        body = self._request("GET", f"/meetings/{meeting_id}/recordings")
        files = body.get("recording_files") or []
        if not isinstance(files, list):
            raise ProviderError("Zoom 녹화 응답 형식이 올바르지 않습니다.", meeting_id=meeting_id)
        artifacts = []
        for item in files:
            if not isinstance(item, dict):
                continue
            if str(item.get("status") or "completed").lower() != "completed":
                continue
            url = item.get("play_url") or item.get("download_url")
            if not url:
                continue
            artifacts.append(
                {
                    "id": str(item.get("id") or url),
                    "url": url,
                    "file_type": (item.get("file_type") or "").upper() or None,
                    "size": item.get("file_size"),
                    "recorded_at": item.get("recording_start"),
                }
            )
        return artifacts


@lru_cache(maxsize=1)
def get_zoom_client() -> ZoomClient:
    return ZoomClient()
