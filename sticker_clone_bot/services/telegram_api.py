from __future__ import annotations

import asyncio
import json
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

import aiohttp

from ..errors import (
    BotBlockedError,
    CapacityRaceError,
    ContainerNotFoundError,
    StickerBotError,
    TransientExternalError,
    ValidationError,
)


class TelegramAPIError(StickerBotError):
    def __init__(self, method: str, error_code: int, description: str) -> None:
        self.method = method
        self.error_code = error_code
        self.description = description
        super().__init__(f"Telegram {method} failed ({error_code}): {description}")


@dataclass(slots=True, frozen=True)
class UploadFile:
    filename: str
    content: bytes
    content_type: str = "image/png"


_RETRIABLE_STATUSES = {408, 409, 429, 500, 502, 503, 504}
_NOT_FOUND_MARKERS = ("STICKERSET_INVALID", "STICKERSET_NOT_FOUND", "NOT FOUND")
_RACE_MARKERS = ("STICKERS_TOO_MUCH", "STICKERSET_FULL", "NAME_OCCUPIED", "NAME IS ALREADY OCCUPIED")


def classify_error(method: str, error_code: int, description: str) -> StickerBotError:
    upper = (description or "").upper()
    if error_code in _RETRIABLE_STATUSES:
        return TransientExternalError(f"Telegram {method} temporarily failed ({error_code}): {description}")
    if any(marker in upper for marker in _RACE_MARKERS):
        return CapacityRaceError(f"Telegram {method} lost a race for the volume: {description}")
    if method == "getStickerSet" and error_code == 400 and any(marker in upper for marker in _NOT_FOUND_MARKERS):
        return ContainerNotFoundError(description)
    if error_code == 403 and ("BLOCKED" in upper or "DEACTIVATED" in upper):
        return BotBlockedError(description)
    return TelegramAPIError(method, error_code, description)


class TelegramBotAPI:
    def __init__(
        self,
        token: str,
        timeout_seconds: int,
        base_url: str = "https://api.telegram.org",
    ) -> None:
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = int(timeout_seconds)
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: aiohttp.ClientSession | None = None

    async def start(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    def _endpoint(self, method: str) -> str:
        return f"{self.base_url}/bot{self.token}/{method}"

    def _file_endpoint(self, file_path: str) -> str:
        return f"{self.base_url}/file/bot{self.token}/{file_path}"

    @staticmethod
    def _form_data(params: Mapping[str, Any], files: Mapping[str, UploadFile]) -> aiohttp.FormData:
        form = aiohttp.FormData()
        for name, value in params.items():
            if value is None:
                continue
            form.add_field(name, value if isinstance(value, str) else json.dumps(value, ensure_ascii=False))
        for name, upload in files.items():
            form.add_field(name, upload.content, filename=upload.filename, content_type=upload.content_type)
        return form

    async def _request(
        self,
        method: str,
        params: Mapping[str, Any] | None = None,
        *,
        files: Mapping[str, UploadFile] | None = None,
        retries: int = 1,
        timeout: aiohttp.ClientTimeout | None = None,
    ) -> Any:
        if self._session is None or self._session.closed:
            await self.start()
        assert self._session is not None

        payload = {name: value for name, value in (params or {}).items() if value is not None}
        last_error: StickerBotError | None = None

        for attempt in range(1, retries + 1):
            try:
                if files:
                    request = self._session.post(
                        self._endpoint(method),
                        data=self._form_data(payload, files),
                        timeout=timeout,
                    )
                else:
                    request = self._session.post(self._endpoint(method), json=payload, timeout=timeout)
                async with request as response:
                    text = await response.text()
                    try:
                        body = json.loads(text)
                    except json.JSONDecodeError:
                        body = {"ok": False, "error_code": response.status, "description": text[:300]}
                    if body.get("ok"):
                        return body.get("result")
                    error = classify_error(
                        method,
                        int(body.get("error_code") or response.status),
                        str(body.get("description") or ""),
                    )
            except asyncio.CancelledError:
                raise
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                error = TransientExternalError(f"Telegram {method} transport error: {exc.__class__.__name__}: {exc}")

            if not error.retryable:
                raise error
            last_error = error
            if attempt < retries:
                await asyncio.sleep(min(4.0, 0.5 * attempt + random.random() * 0.3))

        assert last_error is not None
        raise last_error

    async def get_me(self) -> Dict[str, Any]:
        return await self._request("getMe", retries=3)

    async def get_updates(
        self,
        offset: int | None,
        timeout: int,
        allowed_updates: List[str],
    ) -> List[Dict[str, Any]]:
        result = await self._request(
            "getUpdates",
            {"offset": offset, "timeout": timeout, "allowed_updates": allowed_updates},
            timeout=aiohttp.ClientTimeout(total=timeout + self.timeout_seconds),
        )
        return list(result or [])

    async def get_sticker_set(self, name: str) -> Dict[str, Any]:
        return await self._request("getStickerSet", {"name": name})

    async def add_sticker_to_set(
        self,
        user_id: int,
        name: str,
        sticker: Dict[str, Any],
        files: Mapping[str, UploadFile] | None = None,
    ) -> None:
        await self._request(
            "addStickerToSet",
            {"user_id": user_id, "name": name, "sticker": sticker},
            files=files,
        )

    async def create_new_sticker_set(
        self,
        user_id: int,
        name: str,
        title: str,
        stickers: List[Dict[str, Any]],
        files: Mapping[str, UploadFile] | None = None,
    ) -> None:
        await self._request(
            "createNewStickerSet",
            {
                "user_id": user_id,
                "name": name,
                "title": title[:64],
                "stickers": stickers,
                "sticker_type": "regular",
            },
            files=files,
        )

    async def download_file(self, file_id: str, max_bytes: int) -> bytes:
        info = await self._request("getFile", {"file_id": file_id})
        file_size = int((info or {}).get("file_size") or 0)
        if file_size > max_bytes:
            raise ValidationError(f"file is {file_size} bytes, limit is {max_bytes}")
        file_path = (info or {}).get("file_path")
        if not file_path:
            raise TransientExternalError("Telegram getFile returned no file_path")

        if self._session is None or self._session.closed:
            await self.start()
        assert self._session is not None
        try:
            async with self._session.get(self._file_endpoint(str(file_path))) as response:
                if response.status != 200:
                    raise classify_error("downloadFile", response.status, await response.text())
                if response.content_length is not None and response.content_length > max_bytes:
                    raise ValidationError(f"file is {response.content_length} bytes, limit is {max_bytes}")
                chunks: List[bytes] = []
                received = 0
                async for chunk in response.content.iter_chunked(64 * 1024):
                    received += len(chunk)
                    if received > max_bytes:
                        raise ValidationError(f"file exceeds the {max_bytes} byte limit")
                    chunks.append(chunk)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransientExternalError(f"Telegram file download failed: {exc}") from exc
        return b"".join(chunks)

    async def send_message(
        self,
        chat_id: int,
        text: str,
        *,
        parse_mode: str | None = None,
        reply_markup: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        return await self._request(
            "sendMessage",
            {
                "chat_id": chat_id,
                "text": text,
                "parse_mode": parse_mode,
                "reply_markup": reply_markup,
                "link_preview_options": {"is_disabled": True},
            },
            retries=3,
        )

    async def send_chat_action(self, chat_id: int, action: str = "typing") -> None:
        await self._request("sendChatAction", {"chat_id": chat_id, "action": action})

    async def answer_callback_query(self, callback_query_id: str, text: str | None = None) -> None:
        await self._request("answerCallbackQuery", {"callback_query_id": callback_query_id, "text": text})

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        await self._request("deleteMessage", {"chat_id": chat_id, "message_id": message_id})
