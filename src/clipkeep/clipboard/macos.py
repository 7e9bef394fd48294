import logging

try:
    from AppKit import NSPasteboard, NSPasteboardTypeString, NSPasteboardTypePNG, NSPasteboardTypeTIFF
    from Foundation import NSData
    HAS_APPKIT = True
except ImportError:
    HAS_APPKIT = False

from clipkeep.clipboard.base import ClipboardBackend, ClipboardImage, EMPTY_IMAGE
from clipkeep.errors import ClipboardAccessError
from clipkeep.utils.images import decode_data_url, encode_data_url, image_to_data_url

logger = logging.getLogger(__name__)


class MacOSClipboard(ClipboardBackend):

    def read_text(self) -> str:
        if not HAS_APPKIT:
            return ""
        try:
            pasteboard = NSPasteboard.generalPasteboard()
            text = pasteboard.stringForType_(NSPasteboardTypeString)
        except Exception:
            return ""
        return str(text) if text else ""

    def read_image(self) -> ClipboardImage:
        if not HAS_APPKIT:
            return EMPTY_IMAGE

        try:
            pasteboard = NSPasteboard.generalPasteboard()
            types = pasteboard.types() or []
            if NSPasteboardTypePNG in types:
                data = pasteboard.dataForType_(NSPasteboardTypePNG)
                if data:
                    return ClipboardImage(encode_data_url(bytes(data), "image/png"))
            if NSPasteboardTypeTIFF in types:
                data = pasteboard.dataForType_(NSPasteboardTypeTIFF)
                if data:
                    return ClipboardImage(self._tiff_to_data_url(bytes(data)))
        except Exception as e:
            logger.debug(f"Pasteboard image read failed: {e}")
        return EMPTY_IMAGE

    def write_text(self, text: str) -> None:
        if not HAS_APPKIT:
            raise ClipboardAccessError("AppKit is not available")
        pasteboard = NSPasteboard.generalPasteboard()
        pasteboard.clearContents()
        if not pasteboard.setString_forType_(text, NSPasteboardTypeString):
            raise ClipboardAccessError("Pasteboard rejected text")

    def write_image(self, data_url: str) -> None:
        if not HAS_APPKIT:
            raise ClipboardAccessError("AppKit is not available")
        try:
            mime, payload = decode_data_url(data_url)
        except ValueError as e:
            raise ClipboardAccessError(f"Invalid image data: {e}")

        ns_data = NSData.dataWithBytes_length_(payload, len(payload))
        pb_type = NSPasteboardTypeTIFF if "tif" in mime.lower() else NSPasteboardTypePNG
        pasteboard = NSPasteboard.generalPasteboard()
        pasteboard.clearContents()
        if not pasteboard.setData_forType_(ns_data, pb_type):
            raise ClipboardAccessError("Pasteboard rejected image")

    def _tiff_to_data_url(self, payload: bytes) -> str:
        import io
        from PIL import Image

        with Image.open(io.BytesIO(payload)) as image:
            return image_to_data_url(image)
