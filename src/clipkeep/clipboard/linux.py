import logging
import os
import shutil
import subprocess
from typing import Callable, List, Optional

from clipkeep.clipboard.base import ClipboardBackend, ClipboardImage, EMPTY_IMAGE
from clipkeep.errors import ClipboardAccessError
from clipkeep.utils.images import decode_data_url, encode_data_url

logger = logging.getLogger(__name__)


class LinuxClipboard(ClipboardBackend):
    _IMAGE_TARGETS = {
        "image/png": "image/png",
        "image/jpeg": "image/jpeg",
        "image/jpg": "image/jpeg",
        "image/bmp": "image/bmp",
        "image/x-ms-bmp": "image/bmp",
        "image/webp": "image/webp",
    }

    def read_text(self) -> str:
        if self._wayland():
            data = self._run_command(["wl-paste", "--no-newline"], timeout=1.5)
        elif shutil.which("xclip"):
            data = self._run_command(
                ["xclip", "-selection", "clipboard", "-o"], timeout=1.5)
        else:
            return ""
        if not data:
            return ""
        return data.decode("utf-8", errors="ignore")

    def read_image(self) -> ClipboardImage:
        if self._wayland():
            types = self._parse_type_list(
                self._run_command(["wl-paste", "--list-types"], timeout=1.5))

            def reader(target: str) -> Optional[bytes]:
                return self._run_command(["wl-paste", "--type", target], timeout=1.5)
        elif shutil.which("xclip"):
            types = self._parse_type_list(
                self._run_command(
                    ["xclip", "-selection", "clipboard", "-t", "TARGETS", "-o"],
                    timeout=1.5,
                ))

            def reader(target: str) -> Optional[bytes]:
                return self._run_command(
                    ["xclip", "-selection", "clipboard", "-t", target, "-o"],
                    timeout=1.5,
                )
        else:
            return EMPTY_IMAGE

        return self._extract_image(types, reader)

    def write_text(self, text: str) -> None:
        if self._wayland():
            self._pipe(["wl-copy"], text.encode("utf-8"))
        elif shutil.which("xclip"):
            self._pipe(["xclip", "-selection", "clipboard"], text.encode("utf-8"))
        else:
            raise ClipboardAccessError("Neither wl-copy nor xclip is available")

    def write_image(self, data_url: str) -> None:
        try:
            mime, payload = decode_data_url(data_url)
        except ValueError as e:
            raise ClipboardAccessError(f"Invalid image data: {e}")

        if self._wayland():
            self._pipe(["wl-copy", "--type", mime], payload)
        elif shutil.which("xclip"):
            self._pipe(["xclip", "-selection", "clipboard", "-t", mime], payload)
        else:
            raise ClipboardAccessError("Neither wl-copy nor xclip is available")

    def _wayland(self) -> bool:
        return bool(os.environ.get("WAYLAND_DISPLAY")) and shutil.which("wl-paste") is not None

    def _extract_image(
        self,
        types: List[str],
        reader: Callable[[str], Optional[bytes]],
    ) -> ClipboardImage:
        for target in types:
            mime = self._IMAGE_TARGETS.get(target.lower())
            if mime is None:
                continue
            data = reader(target)
            if data:
                return ClipboardImage(encode_data_url(data, mime))
        return EMPTY_IMAGE

    def _parse_type_list(self, data: Optional[bytes]) -> List[str]:
        if not data:
            return []
        text = data.decode("utf-8", errors="ignore")
        return [line.strip() for line in text.splitlines() if line.strip()]

    def _run_command(self, command: List[str], timeout: float) -> Optional[bytes]:
        try:
            result = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
                timeout=timeout,
            )
            return result.stdout
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError):
            return None

    def _pipe(self, command: List[str], payload: bytes) -> None:
        try:
            subprocess.run(command, input=payload, check=True, timeout=2.0)
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as e:
            raise ClipboardAccessError(f"{command[0]} failed: {e}")
