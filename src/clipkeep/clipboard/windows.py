import io
import logging
import time

import win32clipboard as wc
import win32con
from PIL import Image, ImageGrab

from clipkeep.clipboard.base import ClipboardBackend, ClipboardImage, EMPTY_IMAGE
from clipkeep.errors import ClipboardAccessError
from clipkeep.utils.images import decode_data_url, image_to_data_url

logger = logging.getLogger(__name__)


class WindowsClipboard(ClipboardBackend):

    def read_text(self) -> str:
        if not self._open():
            return ""
        try:
            if not wc.IsClipboardFormatAvailable(wc.CF_UNICODETEXT):
                return ""
            try:
                text = wc.GetClipboardData(wc.CF_UNICODETEXT)
            except Exception:
                return ""
            return text or ""
        finally:
            self._close()

    def read_image(self) -> ClipboardImage:
        try:
            clipboard_data = ImageGrab.grabclipboard()
        except Exception:
            return EMPTY_IMAGE

        # file lists come back as a list of paths
        if clipboard_data is None or not hasattr(clipboard_data, "save"):
            return EMPTY_IMAGE

        try:
            return ClipboardImage(image_to_data_url(clipboard_data))
        except Exception as e:
            logger.error(f"Error encoding clipboard image: {e}")
            return EMPTY_IMAGE

    def write_text(self, text: str) -> None:
        if not self._open():
            raise ClipboardAccessError("Could not open the clipboard")
        try:
            wc.EmptyClipboard()
            wc.SetClipboardData(wc.CF_UNICODETEXT, text)
        finally:
            self._close()

    def write_image(self, data_url: str) -> None:
        try:
            _, payload = decode_data_url(data_url)
            image = Image.open(io.BytesIO(payload))
            if image.mode == "RGBA":
                background = Image.new("RGB", image.size, (255, 255, 255))
                background.paste(image, mask=image.split()[3])
                image = background
            elif image.mode != "RGB":
                image = image.convert("RGB")
            output = io.BytesIO()
            image.save(output, "BMP")
        except Exception as e:
            raise ClipboardAccessError(f"Invalid image data: {e}")

        # CF_DIB is the BMP without its 14-byte file header
        dib_data = output.getvalue()[14:]
        if not self._open():
            raise ClipboardAccessError("Could not open the clipboard")
        try:
            wc.EmptyClipboard()
            wc.SetClipboardData(win32con.CF_DIB, dib_data)
        finally:
            self._close()

    def _open(self) -> bool:
        for _ in range(3):
            try:
                wc.OpenClipboard()
                return True
            except Exception:
                time.sleep(0.05)
        return False

    def _close(self) -> None:
        try:
            wc.CloseClipboard()
        except Exception:
            pass
