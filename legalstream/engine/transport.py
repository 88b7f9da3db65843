"""HTTP transport for the analysis backend (aiohttp).

Builds the two streaming requests the backend accepts and adapts the
open response body to a ByteReader. Nothing here interprets the
stream.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Union

import aiohttp

from .config import StreamConfig
from .errors import TransportError
from .reader import ByteReader

logger = logging.getLogger(__name__)

# Case input: inline text, or a path to a file to upload.
CaseInput = Union[str, Path]

TEXT_UPLOAD_NAME = "case_description.txt"


class ResponseReader(ByteReader):
    """ByteReader over an open aiohttp response body."""

    def __init__(self, response: aiohttp.ClientResponse) -> None:
        self._response = response

    @property
    def status(self) -> int:
        return self._response.status

    async def read(self) -> bytes:
        try:
            return await self._response.content.readany()
        except aiohttp.ClientError as exc:
            raise TransportError(f"Stream read failed: {exc}") from exc

    def release(self) -> None:
        # Closing drops the connection; unread data is never reused.
        self._response.close()


def _auth_headers(config: StreamConfig, token: str | None) -> dict[str, str]:
    headers = dict(config.extra_headers)
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _timeout(config: StreamConfig) -> aiohttp.ClientTimeout:
    if config.request_timeout_seconds <= 0:
        return aiohttp.ClientTimeout(total=None)
    return aiohttp.ClientTimeout(total=config.request_timeout_seconds)


def build_directive_form(case: CaseInput) -> aiohttp.FormData:
    """Multipart body for the directive endpoint.

    A Path is uploaded as-is; text is wrapped as a plain-text file.
    """
    form = aiohttp.FormData()
    if isinstance(case, Path):
        form.add_field(
            "case_file",
            case.read_bytes(),
            filename=case.name,
            content_type="application/octet-stream",
        )
    else:
        form.add_field(
            "case_file",
            case.encode("utf-8"),
            filename=TEXT_UPLOAD_NAME,
            content_type="text/plain",
        )
    form.add_field("case_description", "")
    form.add_field("first_instruction", "")
    return form


async def _open(
    http: aiohttp.ClientSession,
    url: str,
    config: StreamConfig,
    **kwargs: Any,
) -> ResponseReader:
    logger.info("POST %s", url)
    try:
        response = await http.post(url, timeout=_timeout(config), **kwargs)
    except aiohttp.ClientError as exc:
        raise TransportError(f"Request to {url} failed: {exc}") from exc

    if response.status >= 400:
        try:
            body = await response.text()
        finally:
            response.close()
        raise TransportError(
            f"HTTP error! Status: {response.status} - {body}",
            status=response.status,
            body=body,
        )
    logger.debug("Response %d from %s, streaming body", response.status, url)
    return ResponseReader(response)


async def open_directive_stream(
    http: aiohttp.ClientSession,
    config: StreamConfig,
    case: CaseInput,
    token: str | None = None,
) -> ResponseReader:
    """POST the case to the directive endpoint and return its body."""
    return await _open(
        http,
        config.directive_url,
        config,
        data=build_directive_form(case),
        headers=_auth_headers(config, token),
    )


async def open_chat_stream(
    http: aiohttp.ClientSession,
    config: StreamConfig,
    query: str,
    conversation_id: str,
    token: str | None = None,
) -> ResponseReader:
    """POST a follow-up question and return the answer stream."""
    return await _open(
        http,
        config.chat_url,
        config,
        json={"query": query, "conversation_id": conversation_id},
        headers=_auth_headers(config, token),
    )
