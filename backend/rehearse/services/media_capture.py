"""
Camera/microphone capture handle for one recording.

The browser owns the physical devices and streams MediaRecorder chunks to the
server; this handle mirrors the device lock on the server side. It is opened
with the outcome of the browser's device request and must be closed on stop,
on reset, on teardown and on error.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from rehearse.core.errors import DeviceError


LOGGER = logging.getLogger(__name__)

RECORDING_MIME_TYPE = "video/webm"
DEVICE_ERROR_MESSAGE = "Could not access camera or microphone"
MAX_RECORDING_BYTES = 50_000_000  # matches the recordings bucket size limit


class MediaCapture:
    def __init__(self, mime_type: str = RECORDING_MIME_TYPE, max_bytes: int = MAX_RECORDING_BYTES) -> None:
        self.mime_type = mime_type
        self._max_bytes = max_bytes
        self._chunks: List[bytes] = []
        self._size = 0
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def size(self) -> int:
        return self._size

    def open(self, *, camera: bool = True, microphone: bool = True, device_error: Optional[str] = None) -> None:
        """Acquire the device lock; raises DeviceError if the browser was refused."""
        if device_error:
            raise DeviceError(f"{DEVICE_ERROR_MESSAGE}: {device_error}")
        if not camera or not microphone:
            missing = [name for name, ok in (("camera", camera), ("microphone", microphone)) if not ok]
            raise DeviceError(f"{DEVICE_ERROR_MESSAGE}: {' and '.join(missing)} unavailable")
        self._chunks = []
        self._size = 0
        self._open = True

    def write(self, chunk: bytes) -> None:
        if not self._open:
            raise DeviceError("Recording device is not active")
        if not chunk:
            return
        if self._size + len(chunk) > self._max_bytes:
            raise DeviceError("Recording exceeds the maximum allowed size")
        self._chunks.append(bytes(chunk))
        self._size += len(chunk)

    def close(self) -> bytes:
        """Release the device and return everything captured so far."""
        if self._open:
            LOGGER.debug("Releasing capture device (%d bytes captured)", self._size)
        self._open = False
        buffer = b"".join(self._chunks)
        self._chunks = []
        return buffer
